"""
Promo and commission code package.

Defines the two code variants and the validation engine that decides
whether a looked-up code applies to a purchase. Promo codes carry a date
window, a minimum purchase and a usage limit; commission codes are gated
only by their active flag and owner. The engine returns a deterministic
Valid/Rejected outcome and never touches usage counters.

Modules of interest:
- models: Code variants, purchase context and validation outcomes.
- engine: Ordered rule evaluation and discount computation.
- records: Parsing of data-store rows into code variants.
- messages: User-facing rejection messages and error conversion.
- service: Lookup, validate and usage recording flow.
"""

from .models import (
    CodeKind, CodeRecord, CommissionCode, DiscountType, PromoCode,
    PurchaseContext, Rejected, RejectionReason, Valid, ValidationResult,
    canonicalize_code
)
from .engine import CodeValidationEngine, compute_discount

__all__ = [
    "CodeKind", "CodeRecord", "CommissionCode", "DiscountType", "PromoCode",
    "PurchaseContext", "Rejected", "RejectionReason", "Valid", "ValidationResult",
    "canonicalize_code", "CodeValidationEngine", "compute_discount",
]
