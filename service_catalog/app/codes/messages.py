"""
User-facing messages for rejected codes.
"""

from typing import Optional

from shared.config import get_config
from shared.errors import CodeNotFoundError, CodeRejectedError
from .models import CodeKind, CodeValidationResponse, Rejected, RejectionReason, ValidationResult


_PROMO_MESSAGES = {
    RejectionReason.NOT_FOUND: "Promo code is invalid or unavailable",
    RejectionReason.INACTIVE: "Promo code is invalid or unavailable",
    RejectionReason.NOT_YET_VALID: "Promo code is not available yet",
    RejectionReason.EXPIRED: "Promo code has expired",
    RejectionReason.LIMIT_EXHAUSTED: "Promo code usage limit has been reached",
}

_COMMISSION_MESSAGES = {
    RejectionReason.NOT_FOUND: "Commission code is invalid or unavailable",
    RejectionReason.INACTIVE: "Commission code is invalid or unavailable",
}


def describe_rejection(rejected: Rejected, currency: Optional[str] = None) -> str:
    """Message shown to the buyer for a rejected code."""
    if rejected.reason == RejectionReason.BELOW_MINIMUM:
        currency = currency or get_config().currency_label
        return f"Minimum purchase amount: {rejected.threshold} {currency}"

    if rejected.kind == CodeKind.COMMISSION:
        return _COMMISSION_MESSAGES.get(rejected.reason, "Commission code cannot be applied")
    return _PROMO_MESSAGES.get(rejected.reason, "Promo code cannot be applied")


def build_response(result: ValidationResult, currency: Optional[str] = None) -> CodeValidationResponse:
    """Response model for ``result``, with a message when rejected."""
    if result.is_valid:
        return result.to_response()
    return result.to_response(message=describe_rejection(result, currency))


def raise_for_rejection(result: ValidationResult, currency: Optional[str] = None) -> None:
    """Raise for a rejected result, do nothing otherwise.

    Unknown codes raise ``CodeNotFoundError``; every other reason raises
    ``CodeRejectedError``.
    """
    if result.is_valid:
        return

    details = {"code": result.code}
    if result.threshold is not None:
        details["threshold"] = str(result.threshold)
    if result.reason == RejectionReason.NOT_FOUND:
        raise CodeNotFoundError(result.code, details)
    raise CodeRejectedError(result.reason.value, describe_rejection(result, currency), details)
