from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


def api_exception_handler(exc, context):
    """
    Add the machine-readable error code next to ``detail`` for domain errors.

    Field validation errors keep DRF's usual ``{"field": [...]}`` shape.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, APIException) and isinstance(response.data, dict) and "detail" in response.data:
        codes = exc.get_codes()
        if isinstance(codes, str):
            response.data["code"] = codes
    return response
