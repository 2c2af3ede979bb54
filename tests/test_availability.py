"""
Availability index: verified agencies only, manual flag respected, and no
vehicle offered for dates overlapping a confirmed booking.
"""
from datetime import date

import pytest

from conftest import as_caller
from services.availability import available_vehicles, is_vehicle_available, search_vehicles
from services.bookings import cancel_booking, create_booking
from services.errors import InvalidDateRange


def test_free_vehicle_of_verified_agency_is_available(make_agency, make_vehicle):
    vehicle = make_vehicle(make_agency(status="VERIFIED"), daily_rate=5000)

    assert vehicle.id in available_vehicles(date(2024, 1, 1), date(2024, 1, 5))


def test_overlapping_booking_excludes_vehicle(make_agency, make_vehicle, make_user):
    x = make_vehicle(make_agency())
    other = make_vehicle(make_agency())
    renter = make_user()
    create_booking(as_caller(renter), x.id, date(2024, 1, 3), date(2024, 1, 6))

    free = available_vehicles(date(2024, 1, 5), date(2024, 1, 8))
    assert x.id not in free
    assert other.id in free
    assert not is_vehicle_available(x.id, date(2024, 1, 5), date(2024, 1, 8))


def test_back_to_back_ranges_do_not_conflict(make_agency, make_vehicle, make_user):
    x = make_vehicle(make_agency())
    create_booking(as_caller(make_user()), x.id, date(2024, 1, 3), date(2024, 1, 6))

    assert x.id in available_vehicles(date(2024, 1, 6), date(2024, 1, 8))
    assert x.id in available_vehicles(date(2024, 1, 1), date(2024, 1, 3))
    assert x.id not in available_vehicles(date(2024, 1, 1), date(2024, 1, 4))


@pytest.mark.parametrize("status", ["PENDING", "REJECTED"])
def test_unverified_agency_vehicles_never_available(make_agency, make_vehicle, status):
    hidden = make_vehicle(make_agency(status=status))
    shown = make_vehicle(make_agency(status="VERIFIED"))

    free = available_vehicles(date(2024, 2, 1), date(2024, 2, 3))
    assert hidden.id not in free
    assert shown.id in free


def test_manual_flag_off_hides_vehicle(make_agency, make_vehicle):
    off = make_vehicle(make_agency(), is_available=False)

    assert off.id not in available_vehicles(date(2024, 2, 1), date(2024, 2, 3))


def test_cancelled_booking_does_not_block(make_agency, make_vehicle, make_user, admin):
    x = make_vehicle(make_agency())
    booking = create_booking(as_caller(make_user()), x.id, date(2024, 1, 3), date(2024, 1, 6))
    cancel_booking(as_caller(admin), booking.id, reason="test", as_admin=True)

    assert x.id in available_vehicles(date(2024, 1, 4), date(2024, 1, 5))


def test_repeated_queries_return_identical_sets(make_agency, make_vehicle, make_user):
    a = make_vehicle(make_agency())
    make_vehicle(make_agency())
    make_vehicle(make_agency(status="PENDING"))
    create_booking(as_caller(make_user()), a.id, date(2024, 5, 1), date(2024, 5, 4))

    first = available_vehicles(date(2024, 5, 2), date(2024, 5, 9))
    second = available_vehicles(date(2024, 5, 2), date(2024, 5, 9))
    assert first == second
    assert a.id not in first


def test_empty_catalogue_gives_empty_set(app):
    assert available_vehicles(date(2024, 1, 1), date(2024, 1, 2)) == set()


@pytest.mark.parametrize("start,end", [
    (date(2024, 1, 5), date(2024, 1, 5)),
    (date(2024, 1, 6), date(2024, 1, 5)),
])
def test_invalid_range_rejected(app, start, end):
    with pytest.raises(InvalidDateRange):
        available_vehicles(start, end)


def test_search_filters_on_top_of_availability(make_agency, make_vehicle, make_user):
    agency = make_agency()
    diesel = make_vehicle(agency, fuel_type="DIESEL", daily_rate=7000)
    gasoline = make_vehicle(agency, fuel_type="GASOLINE", daily_rate=4000)
    booked_diesel = make_vehicle(agency, fuel_type="DIESEL", daily_rate=6000)
    create_booking(as_caller(make_user()), booked_diesel.id, date(2024, 7, 1), date(2024, 7, 10))

    rows = search_vehicles(start=date(2024, 7, 2), end=date(2024, 7, 4), fuel_type="diesel")
    assert [v.id for v in rows] == [diesel.id]

    # no dates: every visible vehicle, cheapest first
    rows = search_vehicles()
    assert [v.id for v in rows] == [gasoline.id, booked_diesel.id, diesel.id]

    rows = search_vehicles(max_rate=5000)
    assert [v.id for v in rows] == [gasoline.id]


def test_search_text_filters_are_exact_matches(make_agency, make_vehicle):
    agency = make_agency()
    clio = make_vehicle(agency, make="Renault", model="Clio")
    make_vehicle(agency, make="Renault", model="Megane")

    assert [v.id for v in search_vehicles(make="renault", model="CLIO")] == [clio.id]
    assert search_vehicles(make="%") == []
    assert search_vehicles(model="Cli_") == []


def test_zero_numeric_filters_are_applied(make_agency, make_vehicle):
    agency = make_agency()
    cheap = make_vehicle(agency, daily_rate=3000, seats=2)
    roomy = make_vehicle(agency, daily_rate=9000, seats=7)

    assert search_vehicles(max_rate=0) == []
    assert [v.id for v in search_vehicles(min_seats=0)] == [cheap.id, roomy.id]
    assert [v.id for v in search_vehicles(min_seats=5)] == [roomy.id]
