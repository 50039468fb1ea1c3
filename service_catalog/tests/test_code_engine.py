"""
Unit tests for the Code Validation Engine.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from prometheus_client import CollectorRegistry

from service_catalog.app.codes.engine import CodeValidationEngine, compute_discount
from service_catalog.app.codes.models import (
    CodeKind, CommissionCode, DiscountType, PromoCode, PurchaseContext,
    Rejected, RejectionReason, Valid
)
from shared.metrics import MetricsCollector


NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestPromoValidation:
    """Test cases for promo code rules."""

    @pytest.fixture
    def engine(self):
        """Create CodeValidationEngine instance."""
        return CodeValidationEngine(inclusive_date_bounds=True)

    @pytest.fixture
    def promo(self):
        """Promo code that passes every rule for the default context."""
        return PromoCode(
            code="RAMADAN25",
            discount_value=Decimal("25"),
            discount_type=DiscountType.PERCENTAGE,
            valid_from=NOW - timedelta(days=10),
            valid_until=NOW + timedelta(days=10),
            min_purchase_amount=Decimal("100"),
            usage_limit=5,
            used_count=2,
        )

    @pytest.fixture
    def ctx(self):
        """Purchase context."""
        return PurchaseContext(purchase_amount=Decimal("150.00"), now=NOW)

    def test_valid_promo(self, engine, promo, ctx):
        """Test a promo passing every rule."""
        result = engine.validate(promo, ctx)

        assert result == Valid(
            code="RAMADAN25",
            kind=CodeKind.PROMO,
            applied_value=Decimal("25"),
            discount_type=DiscountType.PERCENTAGE,
        )
        assert result.is_valid is True

    def test_promo_without_optional_rules(self, engine, ctx):
        """Test a promo with no window, minimum or limit."""
        promo = PromoCode(code="WELCOME", discount_value=Decimal("10"), discount_type=DiscountType.FIXED)

        result = engine.validate(promo, ctx)

        assert isinstance(result, Valid)
        assert result.applied_value == Decimal("10")
        assert result.discount_type == DiscountType.FIXED

    def test_inactive_short_circuits(self, engine, ctx):
        """Test inactive wins even when every other rule would fail."""
        promo = PromoCode(
            code="DEAD",
            discount_value=Decimal("5"),
            active=False,
            valid_from=NOW + timedelta(days=1),
            valid_until=NOW - timedelta(days=1),
            min_purchase_amount=Decimal("1000"),
            usage_limit=1,
            used_count=1,
        )

        result = engine.validate(promo, ctx)

        assert result == Rejected(reason=RejectionReason.INACTIVE, code="DEAD", kind=CodeKind.PROMO)

    def test_inactive_rejects_otherwise_valid_promo(self, engine, promo, ctx):
        """Test inactive rejects a promo that would otherwise pass."""
        result = engine.validate(replace(promo, active=False), ctx)

        assert result.reason == RejectionReason.INACTIVE

    def test_not_yet_valid(self, engine, promo, ctx):
        """Test promo before its start date."""
        result = engine.validate(replace(promo, valid_from=NOW + timedelta(seconds=1)), ctx)

        assert result.reason == RejectionReason.NOT_YET_VALID

    def test_valid_from_boundary_inclusive(self, engine, promo, ctx):
        """Test promo is valid at exactly its start instant."""
        result = engine.validate(replace(promo, valid_from=NOW), ctx)

        assert result.is_valid is True

    def test_expired(self, engine, promo, ctx):
        """Test promo one second past its end date."""
        result = engine.validate(replace(promo, valid_until=NOW - timedelta(seconds=1)), ctx)

        assert result.reason == RejectionReason.EXPIRED

    def test_valid_until_boundary_inclusive(self, engine, promo, ctx):
        """Test promo is valid at exactly its end instant."""
        result = engine.validate(replace(promo, valid_until=NOW), ctx)

        assert result.is_valid is True

    def test_date_rules_checked_before_minimum(self, engine, promo):
        """Test an expired promo reports expiry even below the minimum."""
        ctx = PurchaseContext(purchase_amount=Decimal("1"), now=NOW)

        result = engine.validate(replace(promo, valid_until=NOW - timedelta(days=1)), ctx)

        assert result.reason == RejectionReason.EXPIRED

    def test_minimum_equal_is_accepted(self, engine, promo):
        """Test purchase exactly at the minimum passes."""
        ctx = PurchaseContext(purchase_amount=Decimal("100"), now=NOW)

        assert engine.validate(promo, ctx).is_valid is True

    def test_below_minimum(self, engine, promo):
        """Test purchase just under the minimum carries the threshold."""
        ctx = PurchaseContext(purchase_amount=Decimal("99.99"), now=NOW)

        result = engine.validate(promo, ctx)

        assert result == Rejected(
            reason=RejectionReason.BELOW_MINIMUM,
            code="RAMADAN25",
            kind=CodeKind.PROMO,
            threshold=Decimal("100"),
        )

    def test_minimum_compares_exactly_with_float_amounts(self, engine, promo):
        """Test float amounts are compared as their decimal text."""
        assert engine.validate(promo, PurchaseContext(purchase_amount=99.99, now=NOW)).reason == \
            RejectionReason.BELOW_MINIMUM
        assert engine.validate(promo, PurchaseContext(purchase_amount=100.0, now=NOW)).is_valid is True

    def test_usage_limit_reached(self, engine, promo, ctx):
        """Test used_count equal to the limit is rejected."""
        result = engine.validate(replace(promo, usage_limit=5, used_count=5), ctx)

        assert result.reason == RejectionReason.LIMIT_EXHAUSTED

    def test_usage_limit_not_reached(self, engine, promo, ctx):
        """Test one remaining use is accepted."""
        result = engine.validate(replace(promo, usage_limit=5, used_count=4), ctx)

        assert result.is_valid is True

    def test_minimum_checked_before_usage(self, engine, promo):
        """Test rule order between minimum and usage limit."""
        ctx = PurchaseContext(purchase_amount=Decimal("10"), now=NOW)

        result = engine.validate(replace(promo, used_count=5), ctx)

        assert result.reason == RejectionReason.BELOW_MINIMUM

    def test_validate_does_not_mutate_record(self, engine, promo, ctx):
        """Test validation leaves used_count untouched."""
        before = replace(promo)

        engine.validate(promo, ctx)
        engine.validate(promo, ctx)

        assert promo == before
        assert promo.used_count == 2

    def test_naive_datetimes_treated_as_utc(self, engine, promo):
        """Test naive record timestamps compare against aware now."""
        naive_until = NOW.replace(tzinfo=None)
        ctx = PurchaseContext(purchase_amount=Decimal("150"), now=NOW)

        assert engine.validate(replace(promo, valid_until=naive_until), ctx).is_valid is True
        assert engine.validate(
            replace(promo, valid_until=naive_until - timedelta(seconds=1)), ctx
        ).reason == RejectionReason.EXPIRED

    def test_malformed_record_is_rejected(self, engine, promo, ctx):
        """Test an unparseable amount rejects instead of raising."""
        result = engine.validate(replace(promo, min_purchase_amount="not-a-number"), ctx)

        assert result.reason == RejectionReason.INACTIVE

    def test_unknown_record_type_is_rejected(self, engine, ctx):
        """Test records that are neither variant are rejected."""
        result = engine.validate(object(), ctx)

        assert result.reason == RejectionReason.INACTIVE


class TestExclusiveDateBounds:
    """Date boundary policy switched to exclusive."""

    @pytest.fixture
    def engine(self):
        """Create engine with exclusive date bounds."""
        return CodeValidationEngine(inclusive_date_bounds=False)

    def test_valid_until_boundary_exclusive(self, engine):
        """Test promo is expired at exactly its end instant."""
        promo = PromoCode(code="EDGE", discount_value=Decimal("5"), valid_until=NOW)

        result = engine.validate(promo, PurchaseContext(purchase_amount=Decimal("1"), now=NOW))

        assert result.reason == RejectionReason.EXPIRED

    def test_valid_from_boundary_exclusive(self, engine):
        """Test promo is not yet valid at exactly its start instant."""
        promo = PromoCode(code="EDGE", discount_value=Decimal("5"), valid_from=NOW)

        result = engine.validate(promo, PurchaseContext(purchase_amount=Decimal("1"), now=NOW))

        assert result.reason == RejectionReason.NOT_YET_VALID

    def test_default_policy_from_config(self):
        """Test the configured default is inclusive."""
        assert CodeValidationEngine().inclusive_date_bounds is True


class TestCommissionValidation:
    """Test cases for commission code rules."""

    @pytest.fixture
    def engine(self):
        """Create CodeValidationEngine instance."""
        return CodeValidationEngine()

    @pytest.fixture
    def commission(self):
        """Active commission code."""
        return CommissionCode(
            code="SARA10",
            owner_identity="sara@example.com",
            commission_rate=Decimal("10"),
            owner_name="Sara",
        )

    def test_valid_commission(self, engine, commission):
        """Test an active commission code applies its rate."""
        ctx = PurchaseContext(purchase_amount=Decimal("50"), now=NOW)

        result = engine.validate(commission, ctx)

        assert result == Valid(code="SARA10", kind=CodeKind.COMMISSION, applied_value=Decimal("10"))

    def test_commission_ignores_dates_and_amounts(self, engine, commission):
        """Test commission codes have no date window or minimum."""
        far_future = datetime(2999, 1, 1, tzinfo=timezone.utc)
        ctx = PurchaseContext(purchase_amount=Decimal("0"), now=far_future)

        assert engine.validate(commission, ctx).is_valid is True

    def test_inactive_commission(self, engine, commission):
        """Test inactive commission codes are rejected."""
        ctx = PurchaseContext(purchase_amount=Decimal("50"), now=NOW)

        result = engine.validate(replace(commission, active=False), ctx)

        assert result == Rejected(reason=RejectionReason.INACTIVE, code="SARA10", kind=CodeKind.COMMISSION)

    def test_commission_without_owner_rejected(self, engine, commission):
        """Test a commission code with no owner is treated as inactive."""
        ctx = PurchaseContext(purchase_amount=Decimal("50"), now=NOW)

        result = engine.validate(replace(commission, owner_identity=None), ctx)

        assert result.reason == RejectionReason.INACTIVE

    def test_is_owner_exact_match(self, engine, commission):
        """Test ownership is an exact identity match."""
        assert engine.is_owner(commission, "sara@example.com") is True
        assert engine.is_owner(commission, "Sara@example.com") is False
        assert engine.is_owner(commission, " sara@example.com") is False
        assert engine.is_owner(commission, None) is False

    def test_is_owner_requires_active(self, engine, commission):
        """Test inactive codes have no owner."""
        assert engine.is_owner(replace(commission, active=False), "sara@example.com") is False

    def test_is_owner_rejects_promo(self, engine):
        """Test promo codes are never owned."""
        promo = PromoCode(code="WELCOME", discount_value=Decimal("10"))

        assert engine.is_owner(promo, "sara@example.com") is False


class TestComputeDiscount:
    """Test cases for discount computation."""

    def test_percentage_discount(self):
        """Test percentage of the purchase amount."""
        promo = PromoCode(code="P", discount_value=Decimal("15"), discount_type=DiscountType.PERCENTAGE)

        assert compute_discount(promo, Decimal("200")) == Decimal("30.00")

    def test_percentage_rounds_half_up(self):
        """Test rounding to cents."""
        promo = PromoCode(code="P", discount_value=Decimal("12.5"), discount_type=DiscountType.PERCENTAGE)

        assert compute_discount(promo, Decimal("0.99")) == Decimal("0.12")
        assert compute_discount(promo, Decimal("1.00")) == Decimal("0.13")

    def test_fixed_discount(self):
        """Test fixed amount off."""
        promo = PromoCode(code="F", discount_value=Decimal("20"), discount_type=DiscountType.FIXED)

        assert compute_discount(promo, Decimal("150")) == Decimal("20")

    def test_fixed_discount_capped_at_amount(self):
        """Test discount never exceeds the purchase."""
        promo = PromoCode(code="F", discount_value=Decimal("50"), discount_type=DiscountType.FIXED)

        assert compute_discount(promo, Decimal("30")) == Decimal("30")


class TestEngineMetrics:
    """Metrics emitted by the engine."""

    def test_outcomes_are_counted(self):
        """Test validations are counted by kind and outcome."""
        registry = CollectorRegistry()
        engine = CodeValidationEngine(metrics=MetricsCollector("catalog", registry))
        ctx = PurchaseContext(purchase_amount=Decimal("10"), now=NOW)

        engine.validate(PromoCode(code="A", discount_value=Decimal("1")), ctx)
        engine.validate(PromoCode(code="B", discount_value=Decimal("1"), active=False), ctx)
        engine.validate(CommissionCode(code="C", owner_identity="c@example.com", commission_rate=Decimal("5")), ctx)

        def sample(kind, outcome):
            return registry.get_sample_value("code_validations_total", {"kind": kind, "outcome": outcome})

        assert sample("promo", "valid") == 1
        assert sample("promo", "inactive") == 1
        assert sample("commission", "valid") == 1
