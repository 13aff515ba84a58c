from __future__ import annotations

from decimal import Decimal
from typing import List

from django.conf import settings
from django.core.mail import send_mail

from bookings.models import Booking


def _format_from_email() -> str:
    default_from = settings.DEFAULT_FROM_EMAIL
    email_addr = default_from
    if '<' in default_from and default_from.endswith('>'):
        email_addr = default_from.split('<', 1)[1].rstrip('>')
    return f"ParkaLot Bookings <{email_addr}>"


def _summary(booking) -> List[str]:
    if isinstance(booking, Booking):
        place = f"{booking.space.name}, {booking.space.address_line1}, {booking.space.city} {booking.space.postcode}"
    else:
        place = f"{booking.garage.name}, {booking.garage.location}"
    return [
        f"Where: {place}",
        f"From: {booking.start_time:%A %d %B %Y, %H:%M}",
        f"Until: {booking.end_time:%A %d %B %Y, %H:%M}",
        f"Total: £{booking.total_price}",
    ]


def _renter(booking):
    return booking.renter if isinstance(booking, Booking) else booking.user


def send_booking_confirmation_email(*, booking):
    renter = _renter(booking)
    subject = f"Booking #{booking.pk} confirmed"
    body_lines = [
        f"Hi {renter.display_name or renter.email},",
        "",
        "Your payment went through and your parking is confirmed.",
        "",
        *_summary(booking),
    ]
    if isinstance(booking, Booking) and booking.space.access_instructions:
        body_lines += ["", "Access instructions:", booking.space.access_instructions]
    body_lines += ["", "Manage your booking: " + f"{settings.FRONTEND_URL.rstrip('/')}/bookings/{booking.pk}"]

    recipients = [renter.email]
    send_mail(
        subject,
        "\n".join(body_lines),
        _format_from_email(),
        recipients,
        fail_silently=False,
    )

    if isinstance(booking, Booking) and booking.owner.email:
        owner_lines = [
            f"Hi {booking.owner.display_name or booking.owner.email},",
            "",
            f"{renter.display_name or renter.email} has booked {booking.space.name}.",
            "",
            *_summary(booking),
            f"Your payout: £{booking.owner_payout}",
        ]
        if booking.vehicle_registration:
            owner_lines.append(f"Vehicle: {booking.vehicle_registration}")
        send_mail(
            f"New booking for {booking.space.name}",
            "\n".join(owner_lines),
            _format_from_email(),
            [booking.owner.email],
            fail_silently=False,
        )


def send_booking_cancellation_email(*, booking, refund_amount: Decimal):
    renter = _renter(booking)
    body_lines = [
        f"Hi {renter.display_name or renter.email},",
        "",
        f"Booking #{booking.pk} has been cancelled.",
        "",
        *_summary(booking),
        "",
    ]
    if refund_amount > 0:
        body_lines.append(f"A refund of £{refund_amount} is on its way to your card.")
    else:
        body_lines.append("No refund is due for this cancellation.")

    recipients = [renter.email]
    if isinstance(booking, Booking) and booking.owner.email:
        recipients.append(booking.owner.email)
    send_mail(
        f"Booking #{booking.pk} cancelled",
        "\n".join(body_lines),
        _format_from_email(),
        recipients,
        fail_silently=False,
    )
