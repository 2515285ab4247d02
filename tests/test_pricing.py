"""
Tests for the pricing engine.
Uses an in-memory policy source so the stacking rules are tested without a database.
"""

import pytest
from datetime import date
from decimal import Decimal

from exceptions import PricingInvariantError
from services.pricing_service import PricingEngine, contribution


class FakePolicies:
    """Returns every policy of the requested type; the engine does the filtering."""

    def __init__(self, policies):
        self.policies = policies
        self.calls = []

    def get_applicable_policies(self, policy_type, on_date, **kwargs):
        self.calls.append((policy_type, on_date))
        return [p for p in self.policies if p['policy_type'] == policy_type]


def make_policy(policy_id, policy_type, percentage, **kwargs):
    policy = {
        'id': policy_id,
        'name': f'{policy_type} {policy_id}',
        'policy_type': policy_type,
        'percentage': Decimal(str(percentage)),
        'valid_from': None,
        'valid_until': None,
        'min_days': None,
        'max_days': None,
        'loyalty_tier': None,
        'destination_id': None,
        'equipment_type_id': None,
        'equipment_id': None,
        'active': True,
    }
    policy.update(kwargs)
    return policy


def make_shape(prices, start=date(2030, 3, 1), end=date(2030, 3, 1), tier='BRONZE', destination_id=1):
    return {
        'start_date': start,
        'end_date': end,
        'destination_id': destination_id,
        'loyalty_tier': tier,
        'lines': [
            {'equipment_id': 100 + i, 'equipment_type_id': 1, 'unit_price': Decimal(str(price))}
            for i, price in enumerate(prices)
        ],
    }


def quote(policies, shape):
    return PricingEngine(FakePolicies(policies)).quote(shape)


class TestSubtotal:
    """Subtotal is the flat sum of line prices."""

    def test_no_policies(self):
        result = quote([], make_shape([85000, 60000]))
        assert result['subtotal'] == Decimal('145000.00')
        assert result['discounts'] == Decimal('0.00')
        assert result['surcharges'] == Decimal('0.00')
        assert result['taxes'] == Decimal('0.00')
        assert result['total'] == Decimal('145000.00')

    def test_not_multiplied_by_days(self):
        result = quote([], make_shape([1000], start=date(2030, 3, 1), end=date(2030, 3, 10)))
        assert result['subtotal'] == Decimal('1000.00')


class TestDiscountScenarios:
    """Reference pricing scenarios."""

    def test_duration_discount_for_seven_days(self):
        """100000 with a 10% discount from 7 days, booked for exactly 7 days."""
        policies = [make_policy(1, 'DURATION_DISCOUNT', 10, min_days=7)]
        shape = make_shape([100000], start=date(2030, 3, 1), end=date(2030, 3, 7))

        result = quote(policies, shape)

        assert result['discounts'] == Decimal('10000.00')
        assert result['total'] == Decimal('90000.00')

    def test_duration_discount_not_reached(self):
        policies = [make_policy(1, 'DURATION_DISCOUNT', 10, min_days=7)]
        shape = make_shape([100000], start=date(2030, 3, 1), end=date(2030, 3, 6))

        assert quote(policies, shape)['discounts'] == Decimal('0.00')

    def test_duration_max_days(self):
        policies = [make_policy(1, 'DURATION_DISCOUNT', 5, min_days=7, max_days=13)]
        shape = make_shape([100000], start=date(2030, 3, 1), end=date(2030, 3, 14))

        assert quote(policies, shape)['discounts'] == Decimal('0.00')

    def test_gold_loyalty_with_unmatched_duration(self):
        policies = [
            make_policy(1, 'LOYALTY_DISCOUNT', 15, loyalty_tier='GOLD'),
            make_policy(2, 'DURATION_DISCOUNT', 10, min_days=7),
        ]
        shape = make_shape([100000], start=date(2030, 3, 1), end=date(2030, 3, 3), tier='GOLD')

        result = quote(policies, shape)

        assert result['discounts'] == Decimal('15000.00')
        assert result['total'] == Decimal('85000.00')
        assert [p['policy_id'] for p in result['breakdown']['loyalty']] == [1]
        assert result['breakdown']['duration'] == []

    def test_loyalty_for_other_tier_ignored(self):
        policies = [make_policy(1, 'LOYALTY_DISCOUNT', 15, loyalty_tier='GOLD')]
        result = quote(policies, make_shape([100000], tier='SILVER'))
        assert result['discounts'] == Decimal('0.00')

    def test_loyalty_without_tier_applies_to_all(self):
        policies = [make_policy(1, 'LOYALTY_DISCOUNT', 3)]
        result = quote(policies, make_shape([100000], tier='BRONZE'))
        assert result['discounts'] == Decimal('3000.00')

    def test_discounts_clamped_with_surcharge_and_tax(self):
        """50% + 60% + 40% of 1000 clamps to 1000; surcharge and tax use the full subtotal."""
        policies = [
            make_policy(1, 'SEASONAL_DISCOUNT', 50),
            make_policy(2, 'DURATION_DISCOUNT', 60),
            make_policy(3, 'LOYALTY_DISCOUNT', 40),
            make_policy(4, 'PEAK_SURCHARGE', 10),
            make_policy(5, 'TAX', 8),
        ]

        result = quote(policies, make_shape([1000]))

        assert result['subtotal'] == Decimal('1000.00')
        assert result['discounts'] == Decimal('1000.00')
        assert result['surcharges'] == Decimal('100.00')
        assert result['taxes'] == Decimal('80.00')
        assert result['total'] == Decimal('180.00')

    def test_discounts_stack_additively(self):
        policies = [
            make_policy(1, 'SEASONAL_DISCOUNT', 5),
            make_policy(2, 'SEASONAL_DISCOUNT', 7),
        ]
        result = quote(policies, make_shape([2000]))
        assert result['discounts'] == Decimal('240.00')
        assert len(result['breakdown']['seasonal']) == 2


class TestPolicyFiltering:
    """Predicates re-applied by the engine."""

    def test_inactive_policy_ignored(self):
        policies = [make_policy(1, 'TAX', 19, active=False)]
        assert quote(policies, make_shape([1000]))['taxes'] == Decimal('0.00')

    def test_validity_window(self):
        policies = [
            make_policy(1, 'PEAK_SURCHARGE', 10, valid_from=date(2030, 3, 1), valid_until=date(2030, 3, 31)),
            make_policy(2, 'PEAK_SURCHARGE', 20, valid_from=date(2030, 4, 1)),
            make_policy(3, 'PEAK_SURCHARGE', 30, valid_until=date(2030, 2, 28)),
        ]
        result = quote(policies, make_shape([1000], start=date(2030, 3, 15), end=date(2030, 4, 5)))
        assert result['surcharges'] == Decimal('100.00')

    def test_window_checked_against_start_date(self):
        policies = [make_policy(1, 'SEASONAL_DISCOUNT', 10, valid_from=date(2030, 3, 5))]
        result = quote(policies, make_shape([1000], start=date(2030, 3, 1), end=date(2030, 3, 10)))
        assert result['discounts'] == Decimal('0.00')

    def test_destination_scope(self):
        policies = [
            make_policy(1, 'TAX', 10, destination_id=1),
            make_policy(2, 'TAX', 5, destination_id=2),
        ]
        result = quote(policies, make_shape([1000], destination_id=1))
        assert result['taxes'] == Decimal('100.00')

    def test_equipment_type_scope(self):
        policies = [
            make_policy(1, 'SEASONAL_DISCOUNT', 10, equipment_type_id=1),
            make_policy(2, 'SEASONAL_DISCOUNT', 10, equipment_type_id=9),
        ]
        result = quote(policies, make_shape([1000]))
        assert result['discounts'] == Decimal('100.00')

    def test_equipment_scope(self):
        policies = [
            make_policy(1, 'PEAK_SURCHARGE', 10, equipment_id=100),
            make_policy(2, 'PEAK_SURCHARGE', 10, equipment_id=999),
        ]
        result = quote(policies, make_shape([1000, 500]))
        assert result['surcharges'] == Decimal('150.00')

    def test_queries_each_category_at_start_date(self):
        source = FakePolicies([])
        PricingEngine(source).quote(make_shape([1000], start=date(2030, 3, 1), end=date(2030, 3, 4)))

        assert {call[0] for call in source.calls} == {
            'DURATION_DISCOUNT', 'LOYALTY_DISCOUNT', 'SEASONAL_DISCOUNT', 'PEAK_SURCHARGE', 'TAX'
        }
        assert all(call[1] == date(2030, 3, 1) for call in source.calls)


class TestRounding:
    """Each contribution is rounded half-up to cents."""

    def test_half_up(self):
        assert contribution(Decimal('0.50'), Decimal('5')) == Decimal('0.03')
        assert contribution(Decimal('10.10'), Decimal('12.5')) == Decimal('1.26')

    def test_rounded_per_policy(self):
        policies = [
            make_policy(1, 'TAX', Decimal('2.5')),
            make_policy(2, 'TAX', Decimal('2.5')),
        ]
        result = quote(policies, make_shape([Decimal('0.50')]))
        assert result['taxes'] == Decimal('0.02')


class TestInvariants:
    """Totals identity and corrupt policy data."""

    @pytest.mark.parametrize('percentages', [
        (0, 0, 0, 0, 0),
        (10, 5, 3, 7, 19),
        (100, 100, 100, 100, 100),
        (33.33, 12.5, 0, 1, 0.5),
    ])
    def test_total_identity(self, percentages):
        kinds = ['DURATION_DISCOUNT', 'LOYALTY_DISCOUNT', 'SEASONAL_DISCOUNT', 'PEAK_SURCHARGE', 'TAX']
        policies = [make_policy(i, kind, pct) for i, (kind, pct) in enumerate(zip(kinds, percentages), 1)]

        result = quote(policies, make_shape([Decimal('1234.56'), Decimal('99.99')]))

        assert result['total'] == result['subtotal'] - result['discounts'] + result['surcharges'] + result['taxes']
        assert Decimal('0') <= result['discounts'] <= result['subtotal']

    def test_percentage_out_of_range(self):
        policies = [make_policy(1, 'TAX', 150)]
        with pytest.raises(PricingInvariantError):
            quote(policies, make_shape([1000]))

    def test_inverted_day_bounds(self):
        policies = [make_policy(1, 'DURATION_DISCOUNT', 5, min_days=10, max_days=3)]
        with pytest.raises(PricingInvariantError):
            quote(policies, make_shape([1000]))

    def test_not_a_reservation_error(self):
        from exceptions import ReservationError
        assert not issubclass(PricingInvariantError, ReservationError)
