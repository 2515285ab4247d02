"""
Reservation lifecycle.

Creates, modifies, confirms and cancels reservations, and advances them by date
through the periodic sweep. Every mutation runs in one write transaction that
also covers its availability check, its history entry and the client's loyalty
recount, so a failed operation leaves nothing behind.
"""

import logging

from exceptions import IllegalTransitionError, NotFoundError, UnavailableError
from models.reservation_state import (
    STATE_CANCELLED,
    STATE_CONFIRMED,
    STATE_FINISHED,
    STATE_IN_PROGRESS,
    STATE_PENDING,
    SWEEP_STATES,
    is_modifiable,
    sweep_target,
    validate_transition,
)
from utils.datetime_helpers import parse_date
from .availability_service import AvailabilityChecker
from .pricing_service import PricingEngine

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = 'SYSTEM'

SWEEP_NOTES = {
    STATE_IN_PROGRESS: 'Reservation started automatically',
    STATE_FINISHED: 'Reservation finished automatically',
}


def unique_ids(equipment_ids) -> list:
    """Drop repeated equipment IDs, keeping the first occurrence."""
    return list(dict.fromkeys(equipment_ids or []))


class ReservationService:
    """
    Reservation operations over injected collaborators.

    Args:
        catalog: Equipment, destination and client lookups, usage counters,
                 refresh_client_loyalty, refresh_preferred_destination
        reservations: Reservation store with atomic() and CRUD/query functions
        policies: Policy store for the pricing engine
        clock: Provides get_today and get_now
        history: Provides append_history_entry and get_history
        default_actor: Actor recorded when a caller does not name one
    """

    def __init__(self, catalog, reservations, policies, clock, history, default_actor: str = 'USER'):
        self.catalog = catalog
        self.reservations = reservations
        self.clock = clock
        self.history = history
        self.default_actor = default_actor
        self.availability = AvailabilityChecker(catalog, reservations, clock)
        self.pricing = PricingEngine(policies)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load(self, reservation_id: int) -> dict:
        reservation = self.reservations.get_reservation_by_id(reservation_id)
        if not reservation:
            raise NotFoundError('Reservation', reservation_id)
        return reservation

    def _prepare(self, client_id, start_date, end_date, destination_id, equipment_ids,
                 exclude_reservation_id=None) -> tuple:
        """Validate a booking request and price it. Returns (lines, quote)."""
        client = self.catalog.get_client_by_id(client_id)
        if not client:
            raise NotFoundError('Client', client_id)

        if not self.catalog.get_destination_by_id(destination_id):
            raise NotFoundError('Destination', destination_id)

        self.availability.validate_dates(start_date, end_date)

        ids = unique_ids(equipment_ids)
        if not ids:
            raise UnavailableError('At least one equipment item is required')

        equipment_list = self.availability.ensure_bookable(
            ids, start_date, end_date, exclude_reservation_id=exclude_reservation_id
        )

        lines = [
            {
                'equipment_id': equipment['id'],
                'equipment_type_id': equipment['equipment_type_id'],
                'unit_price': equipment['rental_price'],
            }
            for equipment in equipment_list
        ]

        quote = self.pricing.quote({
            'start_date': start_date,
            'end_date': end_date,
            'destination_id': destination_id,
            'loyalty_tier': client['loyalty_tier'],
            'lines': lines,
        })
        return lines, quote

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create(self, client_id: int, start_date, end_date, destination_id: int,
               equipment_ids: list, actor: str = None) -> dict:
        """
        Book equipment for a client.

        Args:
            client_id: Client ID
            start_date: First day (date or YYYY-MM-DD)
            end_date: Last day, inclusive
            destination_id: Destination ID
            equipment_ids: Equipment to book; duplicates are ignored
            actor: Who is booking

        Returns:
            dict: The new PENDING reservation with its lines

        Raises:
            NotFoundError: Unknown client, destination or equipment
            InvalidRangeError, PastDateError: Bad dates
            UnavailableError: Empty list or equipment flagged unavailable
            ConflictError: Equipment already booked, or the write lock was not obtained
        """
        start_date = parse_date(start_date)
        end_date = parse_date(end_date)
        actor = actor or self.default_actor

        with self.reservations.atomic():
            lines, quote = self._prepare(client_id, start_date, end_date, destination_id, equipment_ids)

            now = self.clock.get_now()
            reservation_id = self.reservations.insert_reservation(
                client_id, destination_id, start_date, end_date, STATE_PENDING, quote, now
            )
            self.reservations.insert_reservation_lines(reservation_id, lines)
            self.history.append_history_entry(
                reservation_id, None, STATE_PENDING, actor, 'Reservation created', now
            )
            self.catalog.refresh_client_loyalty(client_id)
            self.catalog.refresh_preferred_destination(client_id)
            self.catalog.increment_usage_count([line['equipment_id'] for line in lines])

        logger.info(
            f"[Reservation] Created {reservation_id} for client {client_id}: "
            f"{len(lines)} item(s) {start_date} - {end_date}, total {quote['total']}"
        )
        return self.reservations.get_reservation_by_id(reservation_id)

    def modify(self, reservation_id: int, client_id: int, start_date, end_date,
               destination_id: int, equipment_ids: list, actor: str = None) -> dict:
        """
        Replace a reservation's client, dates, destination and equipment, and re-price it.
        The state is kept. The reservation's own lines do not block its new range.

        Raises:
            NotFoundError: Unknown reservation, client, destination or equipment
            IllegalTransitionError: Reservation is FINISHED or CANCELLED
            InvalidRangeError, PastDateError, UnavailableError, ConflictError: As create
        """
        start_date = parse_date(start_date)
        end_date = parse_date(end_date)
        actor = actor or self.default_actor

        with self.reservations.atomic():
            current = self._load(reservation_id)
            state = current['state']
            if not is_modifiable(state):
                raise IllegalTransitionError(
                    state, state, f"Cannot modify a {state} reservation"
                )

            lines, quote = self._prepare(
                client_id, start_date, end_date, destination_id, equipment_ids,
                exclude_reservation_id=reservation_id
            )

            now = self.clock.get_now()
            self.reservations.update_reservation(
                reservation_id, client_id, destination_id, start_date, end_date, quote, now
            )
            self.reservations.replace_reservation_lines(reservation_id, lines)
            self.history.append_history_entry(
                reservation_id, state, state, actor, 'Reservation modified', now
            )

            for affected in unique_ids([current['client_id'], client_id]):
                self.catalog.refresh_client_loyalty(affected)
                self.catalog.refresh_preferred_destination(affected)

        logger.info(f"[Reservation] Modified {reservation_id}: total {current['total']} -> {quote['total']}")
        return self.reservations.get_reservation_by_id(reservation_id)

    def confirm(self, reservation_id: int, actor: str = None) -> dict:
        """
        Move a PENDING reservation to CONFIRMED.

        Raises:
            NotFoundError: Unknown reservation
            IllegalTransitionError: Reservation is not PENDING
        """
        actor = actor or self.default_actor

        with self.reservations.atomic():
            current = self._load(reservation_id)
            if current['state'] != STATE_PENDING:
                raise IllegalTransitionError(
                    current['state'], STATE_CONFIRMED,
                    f"Only PENDING reservations can be confirmed (reservation is {current['state']})"
                )

            now = self.clock.get_now()
            self.reservations.update_reservation_state(reservation_id, STATE_CONFIRMED, now)
            self.history.append_history_entry(
                reservation_id, STATE_PENDING, STATE_CONFIRMED, actor, 'Reservation confirmed', now
            )

        logger.info(f"[Reservation] Confirmed {reservation_id}")
        return self.reservations.get_reservation_by_id(reservation_id)

    def cancel(self, reservation_id: int, actor: str = None, notes: str = None) -> dict:
        """
        Cancel a reservation that is not FINISHED or already CANCELLED.
        Prices and equipment usage counters are left as they were.

        Raises:
            NotFoundError: Unknown reservation
            IllegalTransitionError: Reservation is FINISHED or CANCELLED
        """
        actor = actor or self.default_actor

        with self.reservations.atomic():
            current = self._load(reservation_id)
            validate_transition(current['state'], STATE_CANCELLED)

            now = self.clock.get_now()
            self.reservations.update_reservation_state(reservation_id, STATE_CANCELLED, now)
            self.history.append_history_entry(
                reservation_id, current['state'], STATE_CANCELLED, actor,
                notes or 'Reservation cancelled', now
            )
            self.catalog.refresh_client_loyalty(current['client_id'])

        logger.info(f"[Reservation] Cancelled {reservation_id} (was {current['state']})")
        return self.reservations.get_reservation_by_id(reservation_id)

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    def _advance(self, reservation_id: int, today):
        """Move one reservation to its date-driven state. Returns the new state or None."""
        with self.reservations.atomic():
            current = self.reservations.get_reservation_by_id(reservation_id)
            if not current:
                return None

            target = sweep_target(current['state'], current['start_date'], current['end_date'], today)
            if target is None or target == current['state']:
                return None
            validate_transition(current['state'], target)

            now = self.clock.get_now()
            self.reservations.update_reservation_state(reservation_id, target, now)
            self.history.append_history_entry(
                reservation_id, current['state'], target, SYSTEM_ACTOR, SWEEP_NOTES[target], now
            )
        return target

    def sweep(self) -> dict:
        """
        Advance CONFIRMED and IN_PROGRESS reservations by today's date.

        Running it twice on the same day changes nothing the second time.
        A failure on one reservation is logged and the sweep moves on.

        Returns:
            dict: checked, started, finished, failed
        """
        today = self.clock.get_today()
        candidates = self.reservations.get_reservations_in_states(SWEEP_STATES)
        summary = {'checked': len(candidates), 'started': 0, 'finished': 0, 'failed': 0}

        for candidate in candidates:
            try:
                target = self._advance(candidate['id'], today)
            except Exception:
                logger.exception(f"[Sweep] Failed to advance reservation {candidate['id']}")
                summary['failed'] += 1
                continue

            if target == STATE_IN_PROGRESS:
                summary['started'] += 1
            elif target == STATE_FINISHED:
                summary['finished'] += 1

        if summary['started'] or summary['finished'] or summary['failed']:
            logger.info(
                f"[Sweep] {today}: checked={summary['checked']} started={summary['started']} "
                f"finished={summary['finished']} failed={summary['failed']}"
            )
        return summary

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_reservation(self, reservation_id: int) -> dict:
        return self._load(reservation_id)

    def list_reservations(self) -> list:
        """All reservations, newest first."""
        return self.reservations.get_all_reservations()

    def list_by_client(self, client_id: int) -> list:
        if not self.catalog.get_client_by_id(client_id):
            raise NotFoundError('Client', client_id)
        return self.reservations.get_reservations_by_client(client_id)

    def list_by_destination(self, destination_id: int) -> list:
        if not self.catalog.get_destination_by_id(destination_id):
            raise NotFoundError('Destination', destination_id)
        return self.reservations.get_reservations_by_destination(destination_id)

    def get_history(self, reservation_id: int) -> list:
        """History entries of a reservation, newest first."""
        self._load(reservation_id)
        return self.history.get_history(reservation_id)

    def preview_quote(self, client_id: int, start_date, end_date, destination_id: int,
                      equipment_ids: list, exclude_reservation_id: int = None) -> dict:
        """
        Price a booking request without saving anything.
        Performs the same validation and availability checks as create.
        """
        start_date = parse_date(start_date)
        end_date = parse_date(end_date)
        _, quote = self._prepare(
            client_id, start_date, end_date, destination_id, equipment_ids,
            exclude_reservation_id=exclude_reservation_id
        )
        return quote
