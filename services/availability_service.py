"""
Equipment availability checking.

An item is bookable for [start, end] when its general availability flag is set
and no reservation line for it belongs to a PENDING, CONFIRMED or IN_PROGRESS
reservation whose inclusive date range overlaps the requested one.
"""

import logging

from exceptions import (
    ConflictError,
    InvalidRangeError,
    NotFoundError,
    PastDateError,
    UnavailableError,
)
from utils.datetime_helpers import parse_date

logger = logging.getLogger(__name__)


class AvailabilityChecker:
    """
    Answers availability questions against the catalog and reservation store.

    Args:
        catalog: Provides get_equipment_by_id, get_equipment_by_ids,
                 get_equipment_by_destination, get_destination_by_id
        reservations: Provides find_conflicts, count_overlapping_for_destination
        clock: Provides get_today
    """

    def __init__(self, catalog, reservations, clock):
        self.catalog = catalog
        self.reservations = reservations
        self.clock = clock

    def validate_dates(self, start_date, end_date) -> tuple:
        """
        Check a requested booking range.

        Returns:
            tuple: (start_date, end_date) as dates

        Raises:
            InvalidRangeError: A date is missing, malformed, or start is after end
            PastDateError: Start is before today
        """
        start_date = parse_date(start_date)
        end_date = parse_date(end_date)
        if start_date is None or end_date is None:
            raise InvalidRangeError(start_date, end_date, 'Start and end dates are required')
        if start_date > end_date:
            raise InvalidRangeError(start_date, end_date)

        today = self.clock.get_today()
        if start_date < today:
            raise PastDateError(start_date, today)
        return start_date, end_date

    def is_available(self, equipment_id: int, start_date, end_date) -> bool:
        """
        Check whether one item can be booked for a date range.

        Raises:
            InvalidRangeError, PastDateError: Invalid range
            NotFoundError: Unknown equipment
        """
        start_date, end_date = self.validate_dates(start_date, end_date)

        equipment = self.catalog.get_equipment_by_id(equipment_id)
        if not equipment:
            raise NotFoundError('Equipment', equipment_id)

        if not equipment['available']:
            return False

        conflicts = self.reservations.find_conflicts([equipment_id], start_date, end_date)
        return not conflicts

    def available_equipment(self, destination_id: int, start_date, end_date) -> list:
        """
        List a destination's equipment that is free for the whole range.
        Uses a single conflict query for every item at the destination.

        Raises:
            InvalidRangeError, PastDateError: Invalid range
            NotFoundError: Unknown destination
        """
        start_date, end_date = self.validate_dates(start_date, end_date)

        if not self.catalog.get_destination_by_id(destination_id):
            raise NotFoundError('Destination', destination_id)

        candidates = [e for e in self.catalog.get_equipment_by_destination(destination_id) if e['available']]
        if not candidates:
            return []

        conflicts = self.reservations.find_conflicts([e['id'] for e in candidates], start_date, end_date)
        booked = {c['equipment_id'] for c in conflicts}
        return [e for e in candidates if e['id'] not in booked]

    def ensure_bookable(self, equipment_ids: list, start_date, end_date,
                        exclude_reservation_id: int = None) -> list:
        """
        Check that every item exists, is flagged available and is free.
        Fails on the first offending item in request order.

        Args:
            equipment_ids: Requested equipment, already de-duplicated
            start_date: Range start (validated by the caller)
            end_date: Range end (validated by the caller)
            exclude_reservation_id: Reservation whose own lines do not count

        Returns:
            list: Equipment dicts in request order

        Raises:
            NotFoundError: Unknown equipment
            UnavailableError: Equipment flagged unavailable
            ConflictError: Equipment already booked in an overlapping range
        """
        found = self.catalog.get_equipment_by_ids(equipment_ids)
        conflicts = self.reservations.find_conflicts(
            equipment_ids, start_date, end_date, exclude_reservation_id=exclude_reservation_id
        )
        conflict_by_equipment = {}
        for conflict in conflicts:
            conflict_by_equipment.setdefault(conflict['equipment_id'], conflict)

        equipment_list = []
        for equipment_id in equipment_ids:
            equipment = found.get(equipment_id)
            if not equipment:
                raise NotFoundError('Equipment', equipment_id)
            if not equipment['available']:
                raise UnavailableError(
                    f"Equipment '{equipment['name']}' is not available for rental",
                    equipment_id=equipment_id
                )
            conflict = conflict_by_equipment.get(equipment_id)
            if conflict:
                logger.info(
                    f"[Availability] Equipment {equipment_id} taken by reservation "
                    f"{conflict['reservation_id']} ({conflict['start_date']} - {conflict['end_date']})"
                )
                raise ConflictError(
                    f"Equipment '{equipment['name']}' is already booked from "
                    f"{conflict['start_date']} to {conflict['end_date']}",
                    equipment_id=equipment_id
                )
            equipment_list.append(equipment)

        return equipment_list

    def destination_has_capacity(self, destination_id: int, start_date, end_date) -> bool:
        """
        Whether a destination can take one more booking in the range.
        Destinations without max_capacity are unlimited.

        Raises:
            NotFoundError: Unknown destination
        """
        destination = self.catalog.get_destination_by_id(destination_id)
        if not destination:
            raise NotFoundError('Destination', destination_id)

        if destination.get('max_capacity') is None:
            return True

        start_date = parse_date(start_date)
        end_date = parse_date(end_date)

        overlapping = self.reservations.count_overlapping_for_destination(destination_id, start_date, end_date)
        return overlapping < destination['max_capacity']
