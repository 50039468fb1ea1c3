"""
Code data models for the Storefront Catalog core.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class CodeKind(str, Enum):
    """Code kinds."""
    PROMO = "promo"
    COMMISSION = "commission"


class DiscountType(str, Enum):
    """How a promo discount value is applied."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class RejectionReason(str, Enum):
    """Why a code may not be applied."""
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    BELOW_MINIMUM = "below_minimum"
    LIMIT_EXHAUSTED = "limit_exhausted"


def canonicalize_code(raw: str) -> str:
    """Normalize a user supplied code to its stored form."""
    return raw.strip().upper()


@dataclass(frozen=True)
class PromoCode:
    """Discount code with date window, minimum purchase and usage limit."""
    code: str
    discount_value: Decimal
    active: bool = True
    discount_type: DiscountType = DiscountType.PERCENTAGE
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    min_purchase_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    used_count: int = 0
    record_id: Optional[str] = None
    kind: CodeKind = field(default=CodeKind.PROMO, init=False)


@dataclass(frozen=True)
class CommissionCode:
    """Identity-bound code granting a revenue share, gated only by ``active``."""
    code: str
    owner_identity: Optional[str]
    commission_rate: Decimal
    active: bool = True
    owner_name: Optional[str] = None
    record_id: Optional[str] = None
    kind: CodeKind = field(default=CodeKind.COMMISSION, init=False)


CodeRecord = Union[PromoCode, CommissionCode]


@dataclass(frozen=True)
class PurchaseContext:
    """Purchase being priced. ``now`` is explicit so evaluation is deterministic."""
    purchase_amount: Decimal
    now: datetime


class CodeValidationResponse(BaseModel):
    """Serialized validation outcome."""
    valid: bool = Field(..., description="Whether the code may be applied")
    code: Optional[str] = Field(None, description="Canonical code")
    kind: Optional[CodeKind] = Field(None, description="Code kind")
    reason: Optional[RejectionReason] = Field(None, description="Rejection reason")
    message: Optional[str] = Field(None, description="User-facing rejection message")
    applied_value: Optional[Decimal] = Field(None, description="Discount value or commission rate")
    discount_type: Optional[DiscountType] = Field(None, description="Discount type for promo codes")
    threshold: Optional[Decimal] = Field(None, description="Minimum purchase amount for below_minimum")


@dataclass(frozen=True)
class Valid:
    """The code applies; ``applied_value`` is the discount value or commission rate."""
    code: str
    kind: CodeKind
    applied_value: Decimal
    discount_type: Optional[DiscountType] = None

    @property
    def is_valid(self) -> bool:
        return True

    def to_response(self) -> CodeValidationResponse:
        return CodeValidationResponse(
            valid=True,
            code=self.code,
            kind=self.kind,
            applied_value=self.applied_value,
            discount_type=self.discount_type,
        )


@dataclass(frozen=True)
class Rejected:
    """The code does not apply."""
    reason: RejectionReason
    code: Optional[str] = None
    kind: Optional[CodeKind] = None
    threshold: Optional[Decimal] = None

    @property
    def is_valid(self) -> bool:
        return False

    def to_response(self, message: Optional[str] = None) -> CodeValidationResponse:
        return CodeValidationResponse(
            valid=False,
            code=self.code,
            kind=self.kind,
            reason=self.reason,
            message=message,
            threshold=self.threshold,
        )


ValidationResult = Union[Valid, Rejected]
