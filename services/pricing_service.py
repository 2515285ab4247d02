"""
Dynamic pricing.

Stacks every applicable pricing policy on a booking's subtotal in a fixed order:
duration, loyalty and seasonal discounts (clamped to the subtotal), then peak
surcharges and taxes on the original subtotal. Each policy contributes
subtotal * percentage / 100, rounded half-up to cents.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from exceptions import PricingInvariantError
from models.pricing_policy import (
    POLICY_DURATION_DISCOUNT,
    POLICY_LOYALTY_DISCOUNT,
    POLICY_PEAK_SURCHARGE,
    POLICY_SEASONAL_DISCOUNT,
    POLICY_TAX,
)
from utils.datetime_helpers import rental_days

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
HUNDRED = Decimal('100')
ZERO = Decimal('0.00')


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def contribution(subtotal: Decimal, percentage: Decimal) -> Decimal:
    """Amount a percentage policy adds to (or removes from) a subtotal."""
    return (subtotal * Decimal(str(percentage)) / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# PREDICATES
# =============================================================================

def check_policy(policy: dict) -> None:
    """
    Verify the stored invariants of a policy row.

    Raises:
        PricingInvariantError: Percentage outside [0, 100] or bad day bounds
    """
    percentage = policy.get('percentage')
    if percentage is None or not Decimal(str(percentage)).is_finite() \
            or not (0 <= Decimal(str(percentage)) <= 100):
        raise PricingInvariantError(
            f"Policy {policy.get('id')} has percentage {percentage} outside [0, 100]"
        )

    min_days = policy.get('min_days')
    max_days = policy.get('max_days')
    if (min_days is not None and min_days <= 0) or (max_days is not None and max_days <= 0):
        raise PricingInvariantError(f"Policy {policy.get('id')} has non-positive day bounds")
    if min_days is not None and max_days is not None and min_days > max_days:
        raise PricingInvariantError(
            f"Policy {policy.get('id')} has min_days {min_days} greater than max_days {max_days}"
        )


def is_valid_on(policy: dict, on_date) -> bool:
    """Active and inside its validity window (null bounds are open)."""
    if not policy.get('active'):
        return False
    if policy.get('valid_from') is not None and on_date < policy['valid_from']:
        return False
    if policy.get('valid_until') is not None and on_date > policy['valid_until']:
        return False
    return True


def matches_scope(policy: dict, destination_id: int, equipment_type_ids: set, equipment_ids: set) -> bool:
    """A set scope field must match the destination or at least one line."""
    if policy.get('destination_id') is not None and policy['destination_id'] != destination_id:
        return False
    if policy.get('equipment_type_id') is not None and policy['equipment_type_id'] not in equipment_type_ids:
        return False
    if policy.get('equipment_id') is not None and policy['equipment_id'] not in equipment_ids:
        return False
    return True


def matches_duration(policy: dict, days: int) -> bool:
    if policy.get('min_days') is not None and days < policy['min_days']:
        return False
    if policy.get('max_days') is not None and days > policy['max_days']:
        return False
    return True


def matches_tier(policy: dict, loyalty_tier: str) -> bool:
    return policy.get('loyalty_tier') is None or policy['loyalty_tier'] == loyalty_tier


# =============================================================================
# ENGINE
# =============================================================================

class PricingEngine:
    """
    Computes reservation totals from the active pricing policies.

    Args:
        policies: Provides get_applicable_policies(policy_type, on_date,
                  destination_id, equipment_type_ids, equipment_ids)
    """

    def __init__(self, policies):
        self.policies = policies

    def _select(self, policy_type: str, shape: dict, type_ids: set, equipment_ids: set, extra=None) -> list:
        start_date = shape['start_date']
        candidates = self.policies.get_applicable_policies(
            policy_type,
            start_date,
            destination_id=shape.get('destination_id'),
            equipment_type_ids=sorted(type_ids),
            equipment_ids=sorted(equipment_ids)
        )

        selected = []
        for policy in candidates:
            if policy.get('policy_type', policy_type) != policy_type:
                continue
            check_policy(policy)
            if not is_valid_on(policy, start_date):
                continue
            if not matches_scope(policy, shape.get('destination_id'), type_ids, equipment_ids):
                continue
            if extra is not None and not extra(policy):
                continue
            selected.append(policy)
        return selected

    @staticmethod
    def _apply(policies: list, subtotal: Decimal) -> tuple:
        total = ZERO
        applied = []
        for policy in policies:
            amount = contribution(subtotal, policy['percentage'])
            total += amount
            applied.append({
                'policy_id': policy.get('id'),
                'name': policy.get('name'),
                'percentage': Decimal(str(policy['percentage'])),
                'amount': amount,
            })
        return total, applied

    def quote(self, shape: dict) -> dict:
        """
        Price a reservation shape.

        Args:
            shape: dict with start_date, end_date, destination_id, loyalty_tier
                   and lines (each with equipment_id, equipment_type_id, unit_price)

        Returns:
            dict: subtotal, discounts, surcharges, taxes, total (Decimal, 2dp)
                  and breakdown {category: [applied policies]}

        Raises:
            PricingInvariantError: Stored policy data or the result is inconsistent
        """
        lines = shape.get('lines') or []
        start_date = shape['start_date']
        end_date = shape['end_date']
        days = rental_days(start_date, end_date)

        subtotal = to_money(sum((Decimal(str(line['unit_price'])) for line in lines), ZERO))
        type_ids = {line['equipment_type_id'] for line in lines if line.get('equipment_type_id') is not None}
        equipment_ids = {line['equipment_id'] for line in lines}

        duration_policies = self._select(POLICY_DURATION_DISCOUNT, shape, type_ids, equipment_ids,
                                         lambda p: matches_duration(p, days))
        loyalty_policies = self._select(POLICY_LOYALTY_DISCOUNT, shape, type_ids, equipment_ids,
                                        lambda p: matches_tier(p, shape.get('loyalty_tier')))
        seasonal_policies = self._select(POLICY_SEASONAL_DISCOUNT, shape, type_ids, equipment_ids)
        surcharge_policies = self._select(POLICY_PEAK_SURCHARGE, shape, type_ids, equipment_ids)
        tax_policies = self._select(POLICY_TAX, shape, type_ids, equipment_ids)

        duration_amount, duration_applied = self._apply(duration_policies, subtotal)
        loyalty_amount, loyalty_applied = self._apply(loyalty_policies, subtotal)
        seasonal_amount, seasonal_applied = self._apply(seasonal_policies, subtotal)

        combined = duration_amount + loyalty_amount + seasonal_amount
        discounts = min(combined, subtotal)
        if discounts < combined:
            logger.debug(f"[Pricing] Discounts {combined} clamped to subtotal {subtotal}")

        surcharges, surcharge_applied = self._apply(surcharge_policies, subtotal)
        taxes, tax_applied = self._apply(tax_policies, subtotal)

        total = subtotal - discounts + surcharges + taxes
        if discounts < 0 or discounts > subtotal or total < 0:
            raise PricingInvariantError(
                f"Inconsistent totals: subtotal={subtotal} discounts={discounts} total={total}"
            )

        logger.debug(
            f"[Pricing] {days} day(s), {len(lines)} line(s): subtotal={subtotal} "
            f"discounts={discounts} surcharges={surcharges} taxes={taxes} total={total}"
        )

        return {
            'subtotal': subtotal,
            'discounts': discounts,
            'surcharges': surcharges,
            'taxes': taxes,
            'total': total,
            'breakdown': {
                'duration': duration_applied,
                'loyalty': loyalty_applied,
                'seasonal': seasonal_applied,
                'surcharges': surcharge_applied,
                'taxes': tax_applied,
            },
        }
