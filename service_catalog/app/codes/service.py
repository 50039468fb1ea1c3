"""
Code checking flow: canonicalize, look up, validate, record usage.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol, TYPE_CHECKING

from shared.errors import ExternalServiceError, ValidationError
from shared.logging import get_logger
from .engine import CodeValidationEngine, to_decimal
from .models import (
    CodeKind, CodeRecord, CommissionCode, PromoCode, PurchaseContext,
    Rejected, RejectionReason, ValidationResult, canonicalize_code
)

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class CodeLookup(Protocol):
    """Reads code records from the data store."""

    async def find_code(self, kind: CodeKind, code: str) -> Optional[CodeRecord]:
        ...

    async def find_commission_by_owner(self, identity: str) -> Optional[CommissionCode]:
        ...


class UsageRecorder(Protocol):
    """Persists ``used_count + 1`` for a redeemed promo code."""

    async def increment_usage(self, record: PromoCode) -> None:
        ...


@dataclass(frozen=True)
class CodeCheck:
    """A validation outcome together with the record it was computed from."""
    record: Optional[CodeRecord]
    result: ValidationResult


class CodeService:
    """Glue between the data store collaborators and the validation engine."""

    def __init__(
        self,
        lookup: CodeLookup,
        usage_recorder: Optional[UsageRecorder] = None,
        engine: Optional[CodeValidationEngine] = None,
        *,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.lookup = lookup
        self.usage_recorder = usage_recorder
        self.engine = engine or CodeValidationEngine()
        self.metrics = metrics
        self.logger = get_logger("catalog.code_service")

    async def check(
        self,
        raw_code: Optional[str],
        purchase_amount: Any,
        now: datetime,
        kind: CodeKind = CodeKind.PROMO,
    ) -> CodeCheck:
        """Validate a user supplied code against a purchase.

        This is also used for price previews, so it never records usage.
        """
        if raw_code is None or not raw_code.strip():
            raise ValidationError("Code is required", {"kind": kind.value})
        amount = self._purchase_amount(purchase_amount)

        code = canonicalize_code(raw_code)
        try:
            record = await self.lookup.find_code(kind, code)
        except ExternalServiceError:
            self._record_error()
            raise
        except Exception as e:
            self._record_error()
            self.logger.error("Code lookup failed", code=code, kind=kind.value, error=str(e))
            raise ExternalServiceError("code_lookup", str(e), {"code": code}) from e

        if record is None:
            self.logger.info("Code not found", code=code, kind=kind.value)
            return CodeCheck(record=None, result=Rejected(RejectionReason.NOT_FOUND, code=code, kind=kind))

        ctx = PurchaseContext(purchase_amount=amount, now=now)
        return CodeCheck(record=record, result=self.engine.validate(record, ctx))

    async def complete_purchase(self, check: CodeCheck) -> bool:
        """Record a redemption after the purchase went through.

        Only valid promo codes count against their usage limit. Returns
        whether usage was recorded.
        """
        if not check.result.is_valid or not isinstance(check.record, PromoCode):
            return False

        if self.usage_recorder is None:
            self.logger.warning("No usage recorder configured", code=check.record.code)
            return False

        await self.usage_recorder.increment_usage(check.record)
        self.logger.info(
            "Promo code usage recorded",
            code=check.record.code,
            used_count=check.record.used_count + 1,
            usage_limit=check.record.usage_limit,
        )
        return True

    async def commission_code_for(self, identity: Optional[str]) -> Optional[CommissionCode]:
        """The active commission code owned by ``identity``, if any."""
        if not identity:
            return None

        try:
            record = await self.lookup.find_commission_by_owner(identity)
        except ExternalServiceError:
            self._record_error()
            raise
        except Exception as e:
            self._record_error()
            self.logger.error("Commissioner lookup failed", identity=identity, error=str(e))
            raise ExternalServiceError("code_lookup", str(e), {"identity": identity}) from e

        if record is not None and self.engine.is_owner(record, identity):
            return record
        return None

    def _purchase_amount(self, value: Any) -> Decimal:
        try:
            amount = to_decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            amount = None
        if amount is None or not amount.is_finite():
            raise ValidationError("Invalid purchase amount", {"amount": str(value)})
        return amount

    def _record_error(self) -> None:
        if self.metrics:
            self.metrics.record_error("external_service")
