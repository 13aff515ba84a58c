from rest_framework import status
from rest_framework.exceptions import APIException


class InvalidWindow(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "End time must be after the start time."
    default_code = "invalid_window"


class DurationOutOfRange(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Requested duration is outside the allowed booking length."
    default_code = "duration_out_of_range"


class SlotUnavailable(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The space is already booked for the requested time."
    default_code = "slot_unavailable"


class SpaceUnavailable(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This space is not available for booking."
    default_code = "space_unavailable"


class SelfBooking(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "You cannot book your own space."
    default_code = "self_booking"


class InvalidTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This booking cannot move to the requested status."
    default_code = "invalid_transition"
