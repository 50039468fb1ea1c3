"""
Code validation engine for promo and commission codes.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional, TYPE_CHECKING

from shared.config import get_config
from shared.logging import get_logger
from .models import (
    CodeKind, CodeRecord, CommissionCode, DiscountType, PromoCode,
    PurchaseContext, Rejected, RejectionReason, Valid, ValidationResult
)

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 99.99 as 99.99 instead of its binary float expansion
    return Decimal(str(value))


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the data store are UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_discount(promo: PromoCode, purchase_amount: Any) -> Decimal:
    """Discount in currency units for ``purchase_amount``, never above the amount."""
    amount = to_decimal(purchase_amount)
    value = to_decimal(promo.discount_value)

    if promo.discount_type == DiscountType.PERCENTAGE:
        discount = (amount * value / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
    else:
        discount = value

    return max(Decimal(0), min(discount, amount))


class CodeValidationEngine:
    """Decide whether a looked-up code applies to a purchase.

    Promo codes are checked in a fixed order and the first failing rule wins:
    active flag, start date, end date, minimum purchase, usage limit.
    Commission codes are only checked for the active flag and an owner
    identity; they have no date window or usage ceiling.

    The engine never mutates the record. Recording a redemption is the
    caller's job once the purchase completes.
    """

    def __init__(
        self,
        inclusive_date_bounds: Optional[bool] = None,
        *,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if inclusive_date_bounds is None:
            inclusive_date_bounds = get_config().inclusive_date_bounds
        self.inclusive_date_bounds = inclusive_date_bounds
        self.metrics = metrics
        self.logger = get_logger("catalog.code_engine")

    def validate(self, record: CodeRecord, ctx: PurchaseContext) -> ValidationResult:
        """Evaluate ``record`` against ``ctx``."""
        try:
            if isinstance(record, PromoCode):
                result = self._validate_promo(record, ctx)
            elif isinstance(record, CommissionCode):
                result = self._validate_commission(record)
            else:
                self.logger.warning("Unknown code record type", record_type=type(record).__name__)
                result = Rejected(
                    reason=RejectionReason.INACTIVE,
                    code=getattr(record, "code", None),
                )
        except (TypeError, ValueError, ArithmeticError) as e:
            self.logger.error(
                "Malformed code record",
                code=getattr(record, "code", None),
                error=str(e)
            )
            result = Rejected(
                reason=RejectionReason.INACTIVE,
                code=getattr(record, "code", None),
                kind=getattr(record, "kind", None),
            )

        self._record(record, result)
        return result

    def is_owner(self, record: CodeRecord, identity: Optional[str]) -> bool:
        """Whether ``identity`` owns an active commission code (exact match)."""
        if not isinstance(record, CommissionCode) or not record.active:
            return False
        if not identity or not record.owner_identity:
            return False
        return record.owner_identity == identity

    def _validate_promo(self, promo: PromoCode, ctx: PurchaseContext) -> ValidationResult:
        if not promo.active:
            return self._reject(promo, RejectionReason.INACTIVE)

        now = _as_utc(ctx.now)

        if promo.valid_from is not None:
            valid_from = _as_utc(promo.valid_from)
            if now < valid_from or (not self.inclusive_date_bounds and now == valid_from):
                return self._reject(promo, RejectionReason.NOT_YET_VALID)

        if promo.valid_until is not None:
            valid_until = _as_utc(promo.valid_until)
            if now > valid_until or (not self.inclusive_date_bounds and now == valid_until):
                return self._reject(promo, RejectionReason.EXPIRED)

        if promo.min_purchase_amount is not None:
            minimum = to_decimal(promo.min_purchase_amount)
            if to_decimal(ctx.purchase_amount) < minimum:
                return self._reject(promo, RejectionReason.BELOW_MINIMUM, threshold=minimum)

        if promo.usage_limit is not None and promo.used_count >= promo.usage_limit:
            return self._reject(promo, RejectionReason.LIMIT_EXHAUSTED)

        return Valid(
            code=promo.code,
            kind=CodeKind.PROMO,
            applied_value=to_decimal(promo.discount_value),
            discount_type=promo.discount_type,
        )

    def _validate_commission(self, commission: CommissionCode) -> ValidationResult:
        if not commission.active:
            return self._reject(commission, RejectionReason.INACTIVE)

        # A commission code without an owner cannot be attributed to anyone.
        if not commission.owner_identity:
            self.logger.warning("Commission code has no owner", code=commission.code)
            return self._reject(commission, RejectionReason.INACTIVE)

        return Valid(
            code=commission.code,
            kind=CodeKind.COMMISSION,
            applied_value=to_decimal(commission.commission_rate),
        )

    def _reject(
        self,
        record: CodeRecord,
        reason: RejectionReason,
        threshold: Optional[Decimal] = None,
    ) -> Rejected:
        return Rejected(reason=reason, code=record.code, kind=record.kind, threshold=threshold)

    def _record(self, record: Any, result: ValidationResult) -> None:
        outcome = "valid" if result.is_valid else result.reason.value
        kind = getattr(record, "kind", None)
        kind_label = kind.value if isinstance(kind, CodeKind) else "unknown"

        self.logger.debug(
            "Code validation result",
            code=getattr(record, "code", None),
            kind=kind_label,
            outcome=outcome,
        )
        if self.metrics:
            self.metrics.increment_counter("code_validations_total", kind=kind_label, outcome=outcome)
