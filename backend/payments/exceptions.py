from rest_framework import status
from rest_framework.exceptions import APIException


class PaymentMismatch(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The reported payment does not match a known booking payment."
    default_code = "payment_mismatch"


class PaymentNotRequired(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This booking does not need a payment."
    default_code = "payment_not_required"
