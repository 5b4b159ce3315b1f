"""
Unit tests for subscription models and money helpers.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from models.money import format_amount, divide_amount, quantize_amount, sum_amounts, to_decimal
from models.subscription import (
    BillingCycle,
    Subscription,
    SubscriptionStatus,
    status_for_last_charge,
    next_charge_date_for,
    subscription_key,
)
from models.transaction import Transaction
from tests.fixtures.subscription_fixtures import create_subscription, create_transaction, REFERENCE_DATE


class TestMoneyHelpers:
    def test_format_amount_uses_won_and_separators(self):
        assert format_amount(Decimal("10000")) == "₩10,000"
        assert format_amount(Decimal("1234567.89")) == "₩1,234,567"
        assert format_amount(Decimal("0")) == "₩0"

    def test_format_amount_negative_and_none(self):
        assert format_amount(Decimal("-5000")) == "-₩5,000"
        assert format_amount(None) is None

    def test_divide_amount_rounds_half_up(self):
        assert divide_amount(Decimal("10"), 3) == Decimal("3.33")
        assert divide_amount(Decimal("0.05"), 2) == Decimal("0.03")

    def test_divide_amount_by_zero(self):
        with pytest.raises(ValueError):
            divide_amount(Decimal("10"), 0)

    def test_quantize_and_sum(self):
        assert quantize_amount(Decimal("1.005")) == Decimal("1.01")
        assert sum_amounts([Decimal("1.50"), None, Decimal("2.25")]) == Decimal("3.75")
        assert sum_amounts([]) == Decimal(0)

    def test_to_decimal_avoids_float_artifacts(self):
        assert to_decimal(0.1) == Decimal("0.1")
        with pytest.raises(ValueError):
            to_decimal("not-a-number")


class TestBillingCycle:
    def test_days_and_months(self):
        assert BillingCycle.MONTHLY.days == 30
        assert BillingCycle.QUARTERLY.days == 90
        assert BillingCycle.SEMI_ANNUAL.days == 180
        assert BillingCycle.ANNUAL.days == 365
        assert BillingCycle.UNKNOWN.days == 0
        assert BillingCycle.ANNUAL.months == 12
        assert BillingCycle.QUARTERLY.months == 3

    def test_labels(self):
        assert BillingCycle.MONTHLY.label == "월간"
        assert SubscriptionStatus.ACTIVE.label == "활성"


class TestStatusDerivation:
    @pytest.mark.parametrize("days_since,expected", [
        (0, SubscriptionStatus.ACTIVE),
        (60, SubscriptionStatus.ACTIVE),
        (61, SubscriptionStatus.PENDING),
        (90, SubscriptionStatus.PENDING),
        (91, SubscriptionStatus.INACTIVE),
    ])
    def test_status_boundaries(self, days_since, expected):
        last_charge = REFERENCE_DATE - timedelta(days=days_since)
        assert status_for_last_charge(last_charge, today=REFERENCE_DATE) == expected

    def test_custom_thresholds(self):
        last_charge = REFERENCE_DATE - timedelta(days=20)
        assert status_for_last_charge(
            last_charge, today=REFERENCE_DATE, active_days=10, pending_days=30
        ) == SubscriptionStatus.PENDING

    def test_next_charge_date(self):
        assert next_charge_date_for(date(2024, 1, 1), BillingCycle.MONTHLY) == date(2024, 1, 31)
        assert next_charge_date_for(date(2024, 1, 1), BillingCycle.UNKNOWN) is None
        assert next_charge_date_for(None, BillingCycle.MONTHLY) is None


class TestSubscription:
    def test_subscription_key_is_deterministic(self):
        assert subscription_key("NETFLIX") == subscription_key("NETFLIX")
        assert subscription_key("NETFLIX") != subscription_key("SPOTIFY")
        assert create_subscription("NETFLIX").key == subscription_key("NETFLIX")

    def test_calculate_next_charge_date(self):
        sub = create_subscription(billing_cycle=BillingCycle.QUARTERLY)
        sub.next_charge_date = None
        sub.calculate_next_charge_date()
        assert sub.next_charge_date == REFERENCE_DATE + timedelta(days=90)

    def test_annual_cost(self):
        assert create_subscription(monthly_amount="17000").calculate_annual_cost() == Decimal("204000")
        unknown = create_subscription(billing_cycle=BillingCycle.UNKNOWN)
        assert unknown.calculate_annual_cost() == Decimal(0)

    def test_cancellation_candidate(self):
        stale = create_subscription(last_charge_date=REFERENCE_DATE - timedelta(days=61))
        fresh = create_subscription(last_charge_date=REFERENCE_DATE - timedelta(days=60))
        assert stale.is_cancellation_candidate(60, today=REFERENCE_DATE)
        assert not fresh.is_cancellation_candidate(60, today=REFERENCE_DATE)

        sub = create_subscription()
        sub.last_charge_date = None
        assert sub.is_cancellation_candidate(60, today=REFERENCE_DATE)

    def test_days_since_last_charge(self):
        sub = create_subscription(last_charge_date=REFERENCE_DATE - timedelta(days=12))
        assert sub.days_since_last_charge(today=REFERENCE_DATE) == 12

    def test_dynamodb_item_uses_iso_dates_and_enum_values(self):
        sub = create_subscription()
        sub.transactions = [create_transaction("NETFLIX", 17000, REFERENCE_DATE)]

        item = sub.to_dynamodb_item()

        assert item['serviceName'] == "NETFLIX"
        assert item['billingCycle'] == "monthly"
        assert item['status'] == "active"
        assert item['lastChargeDate'] == REFERENCE_DATE.isoformat()
        assert 'transactions' not in item

        restored = Subscription.from_dynamodb_item(item)
        assert restored.monthly_amount == sub.monthly_amount
        assert restored.billing_cycle == BillingCycle.MONTHLY
        assert restored.last_charge_date == REFERENCE_DATE
        assert restored.transactions == []

    def test_from_dynamodb_item_tolerates_unknown_enum_values(self):
        item = create_subscription().to_dynamodb_item()
        item['billingCycle'] = "weekly"
        item['status'] = "paused"
        item['transactionCount'] = Decimal("3")

        restored = Subscription.from_dynamodb_item(item)

        assert restored.billing_cycle == BillingCycle.UNKNOWN
        assert restored.status == SubscriptionStatus.INACTIVE
        assert restored.transaction_count == 3

    def test_transaction_count_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            create_subscription(transaction_count=-1)


class TestTransaction:
    def test_amount_coerced_to_decimal(self):
        txn = Transaction(transactionDate=REFERENCE_DATE, merchant="NETFLIX", amount=17000)
        assert txn.amount == Decimal("17000")
        assert txn.is_charge

    def test_refund_is_not_a_charge(self):
        txn = create_transaction("NETFLIX", -17000, REFERENCE_DATE)
        assert not txn.is_charge

    def test_invalid_amount(self):
        with pytest.raises(ValidationError):
            Transaction(transactionDate=REFERENCE_DATE, merchant="NETFLIX", amount="abc")

    def test_same_merchant_and_similar_amount(self):
        txn = create_transaction("Net flix", 10000, REFERENCE_DATE)
        assert txn.is_same_merchant("NETFLIX")
        assert not txn.is_same_merchant(None)
        assert txn.is_similar_amount(Decimal("10500"), 5.0)
        assert not txn.is_similar_amount(Decimal("10501"), 5.0)

    def test_is_within_period(self):
        txn = create_transaction("NETFLIX", 10000, REFERENCE_DATE)
        assert txn.is_within_period(REFERENCE_DATE, REFERENCE_DATE)
        assert not txn.is_within_period(REFERENCE_DATE + timedelta(days=1), REFERENCE_DATE + timedelta(days=2))

    def test_transactions_are_immutable(self):
        txn = create_transaction("NETFLIX", 10000, REFERENCE_DATE)
        with pytest.raises(ValidationError):
            txn.amount = Decimal("1")

    def test_transactions_have_no_storage_mapping(self):
        # Transactions only live for the duration of one analysis
        assert not hasattr(Transaction, 'to_dynamodb_item')
        assert not hasattr(Transaction, 'from_dynamodb_item')
