"""
Data-store row models for promo codes and commissioners.

The record lookup collaborator reads rows from the hosted data store; these
models parse them and turn them into engine records with canonical codes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import CommissionCode, DiscountType, PromoCode, canonicalize_code


class PromoCodeRow(BaseModel):
    """Row of the ``promo_codes`` table."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[str, int]] = None
    code: str
    is_active: bool = True
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(..., gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    min_purchase_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = Field(None, ge=0)
    used_count: int = Field(0, ge=0)

    @field_validator("code")
    @classmethod
    def canonical_code(cls, v: str) -> str:
        return canonicalize_code(v)

    @field_validator("used_count", mode="before")
    @classmethod
    def null_used_count(cls, v):
        return 0 if v is None else v

    @field_validator("usage_limit", mode="before")
    @classmethod
    def zero_usage_limit(cls, v):
        # The admin tools store 0 for "no limit".
        return None if v in (0, "0") else v

    def to_record(self) -> PromoCode:
        return PromoCode(
            code=self.code,
            discount_value=self.discount_value,
            active=self.is_active,
            discount_type=self.discount_type,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            min_purchase_amount=self.min_purchase_amount,
            usage_limit=self.usage_limit,
            used_count=self.used_count,
            record_id=str(self.id) if self.id is not None else None,
        )


class CommissionerRow(BaseModel):
    """Row of the ``commissioners`` table."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[str, int]] = None
    promo_code: str
    email: Optional[str] = None
    name: Optional[str] = None
    commission_rate: Decimal = Field(..., ge=0)
    is_active: bool = True

    @field_validator("promo_code")
    @classmethod
    def canonical_code(cls, v: str) -> str:
        return canonicalize_code(v)

    def to_record(self) -> CommissionCode:
        return CommissionCode(
            code=self.promo_code,
            owner_identity=self.email,
            commission_rate=self.commission_rate,
            active=self.is_active,
            owner_name=self.name,
            record_id=str(self.id) if self.id is not None else None,
        )
