"""
Reservation services wired to the SQLite-backed stores.
Call these inside an application context.
"""

from flask import current_app

from .availability_service import AvailabilityChecker
from .pricing_service import PricingEngine
from .reservation_service import ReservationService


def get_availability_checker() -> AvailabilityChecker:
    from models import catalog, reservation
    from utils import datetime_helpers

    return AvailabilityChecker(catalog, reservation, datetime_helpers)


def get_pricing_engine() -> PricingEngine:
    from models import pricing_policy

    return PricingEngine(pricing_policy)


def get_reservation_service() -> ReservationService:
    from models import catalog, pricing_policy, reservation, reservation_history
    from utils import datetime_helpers

    return ReservationService(
        catalog=catalog,
        reservations=reservation,
        policies=pricing_policy,
        clock=datetime_helpers,
        history=reservation_history,
        default_actor=current_app.config.get('DEFAULT_ACTOR', 'USER')
    )


__all__ = [
    'AvailabilityChecker',
    'PricingEngine',
    'ReservationService',
    'get_availability_checker',
    'get_pricing_engine',
    'get_reservation_service',
]
