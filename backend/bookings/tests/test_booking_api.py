from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from bookings.models import Booking, GarageReservation
from payments.models import Payment, PayoutLine
from payments.services.payouts import build_payouts
from spaces.models import Space


def _payload(space, start, end, **extra):
    return {
        "space_id": space.id,
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        **extra,
    }


@pytest.mark.django_db
def test_create_booking_returns_pending_booking_and_payment(client_for, renter, space, day):
    client = client_for(renter)

    response = client.post(
        "/api/bookings/",
        _payload(space, day + timedelta(hours=10), day + timedelta(hours=13), vehicle_registration="ab12 cde"),
        format="json",
    )

    assert response.status_code == 201
    body = response.json()
    assert body["booking"]["booking_status"] == "pending"
    assert body["booking"]["payment_status"] == "pending"
    assert body["booking"]["total_price"] == "15.00"
    assert body["booking"]["platform_fee"] == "2.25"
    assert body["booking"]["owner_payout"] == "12.75"
    assert body["booking"]["vehicle_registration"] == "AB12CDE"
    assert body["booking"]["access_instructions"] == ""
    assert body["payment"]["client_secret"]
    assert body["payment"]["status"] == "pending"

    booking = Booking.objects.get(pk=body["booking"]["id"])
    assert booking.owner == space.owner
    assert booking.stripe_payment_intent_id == body["payment"]["intent_id"]
    assert Payment.for_booking(booking).count() == 1


@pytest.mark.django_db
def test_confirming_payment_confirms_booking_and_emails_both_parties(client_for, renter, space, day, mailoutbox):
    client = client_for(renter)
    created = client.post(
        "/api/bookings/",
        _payload(space, day + timedelta(hours=10), day + timedelta(hours=13)),
        format="json",
    ).json()

    response = client.post(
        "/api/payments/confirm/",
        {"payment_intent_id": created["payment"]["intent_id"]},
        format="json",
    )

    assert response.status_code == 200
    assert response.json()["booking_status"] == "confirmed"
    assert response.json()["payment_status"] == "paid"
    booking = Booking.objects.get(pk=created["booking"]["id"])
    assert booking.booking_status == Booking.CONFIRMED
    assert PayoutLine.objects.get(booking=booking).amount == Decimal("12.75")
    recipients = sorted(message.to[0] for message in mailoutbox)
    assert recipients == ["owner@example.com", "renter@example.com"]

    detail = client.get(f"/api/bookings/{booking.id}/").json()
    assert detail["access_instructions"] == "Gate code 4821."


@pytest.mark.django_db
def test_overlapping_confirmed_booking_is_rejected(client_for, make_user, renter, space, day, book):
    book(renter, space, day + timedelta(hours=10), day + timedelta(hours=14))
    other = client_for(make_user("second@example.com"))

    clash = other.post(
        "/api/bookings/",
        _payload(space, day + timedelta(hours=12), day + timedelta(hours=16)),
        format="json",
    )
    adjacent = other.post(
        "/api/bookings/",
        _payload(space, day + timedelta(hours=14), day + timedelta(hours=16)),
        format="json",
    )

    assert clash.status_code == 409
    assert clash.json()["code"] == "slot_unavailable"
    assert adjacent.status_code == 201


@pytest.mark.django_db
def test_owner_cannot_book_own_space(client_for, owner, space, day):
    response = client_for(owner).post(
        "/api/bookings/",
        _payload(space, day + timedelta(hours=10), day + timedelta(hours=12)),
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["code"] == "self_booking"


@pytest.mark.django_db
def test_paused_space_cannot_be_booked(client_for, renter, space, day):
    space.set_status(Space.PAUSED)

    response = client_for(renter).post(
        "/api/bookings/",
        _payload(space, day + timedelta(hours=10), day + timedelta(hours=12)),
        format="json",
    )

    assert response.status_code == 409
    assert response.json()["code"] == "space_unavailable"


@pytest.mark.django_db
def test_start_in_the_past_is_rejected(client_for, renter, space, day):
    start = day - timedelta(days=5)

    response = client_for(renter).post(
        "/api/bookings/",
        _payload(space, start, start + timedelta(hours=2)),
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_window"


@pytest.mark.django_db
def test_half_hour_booking_is_too_short(client_for, renter, space, day):
    response = client_for(renter).post(
        "/api/bookings/",
        _payload(space, day + timedelta(hours=10), day + timedelta(hours=10, minutes=30)),
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["code"] == "duration_out_of_range"
    assert not Booking.objects.exists()


@pytest.mark.django_db
def test_daily_pricing_can_be_requested(client_for, renter, space, day):
    response = client_for(renter).post(
        "/api/bookings/",
        _payload(space, day + timedelta(hours=8), day + timedelta(hours=20), pricing="daily"),
        format="json",
    )

    assert response.status_code == 201
    assert response.json()["booking"]["pricing_mode"] == "daily"
    assert response.json()["booking"]["total_price"] == "30.00"


@pytest.mark.django_db
def test_list_is_split_by_role(client_for, renter, owner, space, day, book):
    book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12))

    as_owner = client_for(owner).get("/api/bookings/", {"role": "owner"})
    as_renter_owner_role = client_for(renter).get("/api/bookings/", {"role": "owner"})
    as_renter = client_for(renter).get("/api/bookings/", {"role": "renter"})

    assert len(as_owner.json()) == 1
    assert as_renter_owner_role.json() == []
    assert len(as_renter.json()) == 1


@pytest.mark.django_db
def test_strangers_cannot_see_a_booking(client_for, make_user, renter, space, day, book):
    booking, _ = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12))

    response = client_for(make_user("nosy@example.com")).get(f"/api/bookings/{booking.id}/")

    assert response.status_code == 404


@pytest.mark.django_db
def test_status_endpoint_applies_state_machine(client_for, renter, owner, space, day, book):
    booking, _ = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12))
    pending, _ = book(renter, space, day + timedelta(hours=14), day + timedelta(hours=15), paid=False)

    too_early = client_for(renter).post(f"/api/bookings/{booking.id}/status/", {"status": "active"}, format="json")
    ended = timezone.now() - timedelta(minutes=5)
    Booking.objects.filter(pk=booking.pk).update(start_time=ended - timedelta(hours=2), end_time=ended)

    checked_in = client_for(renter).post(f"/api/bookings/{booking.id}/status/", {"status": "active"}, format="json")
    completed = client_for(owner).post(
        f"/api/bookings/{booking.id}/status/",
        {"status": "completed", "owner_notes": "Left on time."},
        format="json",
    )
    illegal = client_for(renter).post(f"/api/bookings/{pending.id}/status/", {"status": "completed"}, format="json")

    assert too_early.status_code == 409
    assert too_early.json()["code"] == "invalid_transition"
    assert checked_in.status_code == 200
    assert checked_in.json()["check_in_time"] is not None
    assert completed.status_code == 200
    assert completed.json()["booking_status"] == "completed"
    assert completed.json()["owner_notes"] == "Left on time."
    assert illegal.status_code == 409
    assert illegal.json()["code"] == "invalid_transition"

    space.refresh_from_db()
    assert space.total_bookings == 1
    assert space.total_earnings == Decimal("8.50")


@pytest.mark.django_db
def test_owner_cannot_finish_an_upcoming_booking_early(client_for, renter, owner, space, day, book):
    booking, _ = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12))
    client = client_for(owner)

    activated = client.post(f"/api/bookings/{booking.id}/status/", {"status": "active"}, format="json")
    completed = client.post(f"/api/bookings/{booking.id}/status/", {"status": "completed"}, format="json")

    assert activated.status_code == 409
    assert completed.status_code == 409
    booking.refresh_from_db()
    assert booking.booking_status == Booking.CONFIRMED
    space.refresh_from_db()
    assert space.total_earnings == Decimal("0.00")
    assert build_payouts(day.date() - timedelta(days=1), day.date() + timedelta(days=1)) == []


@pytest.mark.django_db
def test_staff_can_move_a_booking_ahead_of_schedule(client_for, staff, renter, space, day, book):
    booking, _ = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12))

    response = client_for(staff).post(f"/api/bookings/{booking.id}/status/", {"status": "active"}, format="json")

    assert response.status_code == 200
    assert response.json()["booking_status"] == "active"


@pytest.mark.django_db
def test_strangers_cannot_change_status(client_for, make_user, renter, space, day, book):
    booking, _ = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12))

    response = client_for(make_user("nosy@example.com")).post(
        f"/api/bookings/{booking.id}/status/", {"status": "disputed"}, format="json"
    )

    assert response.status_code == 404
    booking.refresh_from_db()
    assert booking.booking_status == Booking.CONFIRMED



@pytest.mark.django_db
def test_review_and_owner_response(client_for, renter, owner, space, day, book):
    booking, _ = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12))
    Booking.objects.filter(pk=booking.pk).update(booking_status=Booking.COMPLETED)

    too_early_owner = client_for(owner).post(f"/api/bookings/{booking.id}/review/", {"rating": 5}, format="json")
    review = client_for(renter).post(
        f"/api/bookings/{booking.id}/review/",
        {"rating": 4, "review_text": "Easy to find."},
        format="json",
    )
    duplicate = client_for(renter).post(f"/api/bookings/{booking.id}/review/", {"rating": 2}, format="json")
    response = client_for(owner).post(
        f"/api/bookings/{booking.id}/review/respond/",
        {"response_text": "Thanks for parking with us!"},
        format="json",
    )

    assert too_early_owner.status_code == 403
    assert review.status_code == 201
    assert duplicate.status_code == 400
    assert response.status_code == 200
    assert response.json()["response_text"] == "Thanks for parking with us!"
    space.refresh_from_db()
    assert space.review_count == 1
    assert space.average_rating == Decimal("4.00")

    public = client_for(renter).get(f"/api/spaces/{space.id}/reviews/")
    assert public.json()[0]["rating"] == 4


@pytest.mark.django_db
def test_review_requires_completed_booking(client_for, renter, space, day, book):
    booking, _ = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12))

    response = client_for(renter).post(f"/api/bookings/{booking.id}/review/", {"rating": 5}, format="json")

    assert response.status_code == 400


@pytest.mark.django_db
def test_invoice_nets_refunds(client_for, renter, space, day, book):
    book(renter, space, day + timedelta(hours=10), day + timedelta(hours=13))
    cancelled, _ = book(renter, space, day + timedelta(days=1, hours=10), day + timedelta(days=1, hours=12))
    client = client_for(renter)
    client.post(f"/api/bookings/{cancelled.id}/cancel/", {}, format="json")

    body = client.get("/api/bookings/invoice/").json()

    assert len(body["items"]) == 2
    assert body["total_charged"] == "25.00"
    assert body["total_refunded"] == "10.00"
    assert body["net_total"] == "15.00"


@pytest.mark.django_db
def test_garage_reservations_respect_capacity(client_for, make_user, renter, garage, day):
    start = day + timedelta(hours=9)
    end = day + timedelta(hours=11)
    payload = {"garage_id": garage.id, "start_time": start.isoformat(), "end_time": end.isoformat()}

    for index in range(2):
        client = client_for(make_user(f"driver{index}@example.com"))
        created = client.post("/api/garage-reservations/", payload, format="json")
        assert created.status_code == 201
        assert created.json()["reservation"]["total_price"] == "5.00"
        client.post(
            "/api/payments/confirm/",
            {"payment_intent_id": created.json()["payment"]["intent_id"]},
            format="json",
        )

    full = client_for(renter).post("/api/garage-reservations/", payload, format="json")

    assert GarageReservation.objects.filter(booking_status=GarageReservation.CONFIRMED).count() == 2
    assert full.status_code == 409
    assert full.json()["code"] == "slot_unavailable"


@pytest.mark.django_db
def test_garage_reservation_cancel(client_for, renter, garage, day):
    client = client_for(renter)
    start = day + timedelta(hours=9)
    created = client.post(
        "/api/garage-reservations/",
        {"garage_id": garage.id, "start_time": start.isoformat(), "end_time": (start + timedelta(hours=1)).isoformat()},
        format="json",
    ).json()
    client.post("/api/payments/confirm/", {"payment_intent_id": created["payment"]["intent_id"]}, format="json")

    response = client.post(f"/api/garage-reservations/{created['reservation']['id']}/cancel/", {}, format="json")

    assert response.status_code == 200
    assert response.json()["booking"]["booking_status"] == "cancelled"
    assert response.json()["refund_amount"] == "2.50"
    assert response.json()["booking"]["payment_status"] == "refunded"
