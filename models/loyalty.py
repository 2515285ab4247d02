"""
Client loyalty tiers.
A tier is a pure function of the client's count of non-cancelled reservations.
"""

TIER_BRONZE = 'BRONZE'
TIER_SILVER = 'SILVER'
TIER_GOLD = 'GOLD'

# (tier, minimum non-cancelled reservations), highest first
TIER_THRESHOLDS = (
    (TIER_GOLD, 10),
    (TIER_SILVER, 5),
    (TIER_BRONZE, 0),
)

LOYALTY_TIERS = (TIER_BRONZE, TIER_SILVER, TIER_GOLD)


def tier_for(reservation_count: int) -> str:
    """
    Derive the loyalty tier for a count of non-cancelled reservations.

    Args:
        reservation_count: Non-cancelled reservations the client holds

    Returns:
        str: 'BRONZE' (0-4), 'SILVER' (5-9) or 'GOLD' (10+)
    """
    if reservation_count < 0:
        raise ValueError(f"Reservation count cannot be negative: {reservation_count}")

    for tier, minimum in TIER_THRESHOLDS:
        if reservation_count >= minimum:
            return tier
    return TIER_BRONZE
