from __future__ import annotations

import enum

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler


class Conflict(APIException):
    """The slot was taken or the booking is not in a state that allows the transition."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The booking could not be updated because it changed or conflicts with another booking."
    default_code = "conflict"


class ProviderErrorKind(str, enum.Enum):
    CARD_DECLINED = "card_declined"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    INVALID_REQUEST = "invalid_request"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


PROVIDER_ERROR_MESSAGES = {
    ProviderErrorKind.CARD_DECLINED: "Your card was declined. Please use a different payment method.",
    ProviderErrorKind.NETWORK: "We could not reach the payment processor. Please try again.",
    ProviderErrorKind.RATE_LIMITED: "The payment processor is busy. Please try again in a moment.",
    ProviderErrorKind.INVALID_REQUEST: "This payment could not be processed. Please refresh and try again.",
    ProviderErrorKind.CONFIGURATION: "Payments are temporarily unavailable. Please try again shortly.",
    ProviderErrorKind.UNKNOWN: "Payment processing failed. Please try again.",
}


class ProviderError(APIException):
    """
    Payment gateway failure, already reduced to a guest-safe message.

    Only messages from PROVIDER_ERROR_MESSAGES are ever exposed; the raw
    provider error is logged by the gateway adapter and kept on `__cause__`.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "provider_error"

    def __init__(self, kind: ProviderErrorKind = ProviderErrorKind.UNKNOWN):
        self.kind = kind
        super().__init__(detail=PROVIDER_ERROR_MESSAGES[kind], code=self.default_code)


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if key == "non_field_errors":
                return message
            return f"{key}: {message}"
        return "Invalid input."
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else "Invalid input."
    return str(detail)


def error_envelope_handler(exc, context):
    """Render every API error as `{"error": str, "code": str}`."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and set(data) == {"detail"}:
        message = str(data["detail"])
    else:
        message = _first_message(data)
    body = {"error": message}
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        body["code"] = codes if isinstance(codes, str) else exc.default_code
    elif response.status_code == status.HTTP_404_NOT_FOUND:
        body["code"] = "not_found"
    elif response.status_code == status.HTTP_403_FORBIDDEN:
        body["code"] = "permission_denied"
    if isinstance(exc, ValidationError) and isinstance(response.data, (dict, list)):
        body["details"] = response.data
    response.data = body
    return response
