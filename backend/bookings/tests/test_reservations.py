from datetime import timedelta

import pytest

from bookings.exceptions import SlotUnavailable
from bookings.models import Booking, GarageReservation
from bookings.services.reservations import quote_space, reserve_garage, reserve_space
from core.context import RequestContext


@pytest.mark.django_db
def test_pending_booking_holds_its_window(make_user, renter, space, day):
    start, end = day + timedelta(hours=10), day + timedelta(hours=13)
    reserve_space(RequestContext(user=renter), space, start, end)

    with pytest.raises(SlotUnavailable):
        reserve_space(RequestContext(user=make_user("second@example.com")), space, start, end)
    with pytest.raises(SlotUnavailable):
        quote_space(space, start + timedelta(hours=1), end + timedelta(hours=1))

    assert Booking.objects.count() == 1


@pytest.mark.django_db
def test_lapsed_hold_frees_the_window(make_user, renter, space, day, expire_hold):
    start, end = day + timedelta(hours=10), day + timedelta(hours=13)
    first = reserve_space(RequestContext(user=renter), space, start, end)
    expire_hold(first)

    second = reserve_space(RequestContext(user=make_user("second@example.com")), space, start, end)

    assert second.booking_status == Booking.PENDING
    assert quote_space(space, end, end + timedelta(hours=1)).total_price


@pytest.mark.django_db
def test_cancelled_booking_releases_the_hold(make_user, renter, space, day):
    start, end = day + timedelta(hours=10), day + timedelta(hours=13)
    first = reserve_space(RequestContext(user=renter), space, start, end)
    Booking.objects.filter(pk=first.pk).update(booking_status=Booking.CANCELLED)

    second = reserve_space(RequestContext(user=make_user("second@example.com")), space, start, end)

    assert second.pk != first.pk


@pytest.mark.django_db
def test_pending_garage_reservations_count_against_capacity(make_user, garage, day, expire_hold):
    start, end = day + timedelta(hours=9), day + timedelta(hours=11)
    held = [
        reserve_garage(RequestContext(user=make_user(f"driver{index}@example.com")), garage, start, end)
        for index in range(2)
    ]

    with pytest.raises(SlotUnavailable):
        reserve_garage(RequestContext(user=make_user("late@example.com")), garage, start, end)

    expire_hold(held[0])
    reserve_garage(RequestContext(user=make_user("later@example.com")), garage, start, end)

    assert GarageReservation.objects.count() == 3
