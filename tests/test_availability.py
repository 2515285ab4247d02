"""
Tests for equipment availability checking.
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

from exceptions import ConflictError, InvalidRangeError, NotFoundError, PastDateError, UnavailableError
from services.availability_service import AvailabilityChecker

D = date(2030, 1, 10)


def days(n):
    return D + timedelta(days=n)


class TestDateValidation:
    """Preconditions shared by every availability question."""

    def test_start_after_end(self, checker, seed):
        with pytest.raises(InvalidRangeError):
            checker.is_available(seed['equipment']['Kayak K-01'], days(5), days(2))

    def test_missing_date(self, checker):
        with pytest.raises(InvalidRangeError):
            checker.validate_dates(None, days(2))

    def test_past_start(self, checker, seed):
        with pytest.raises(PastDateError) as exc_info:
            checker.is_available(seed['equipment']['Kayak K-01'], days(-1), days(2))
        assert exc_info.value.today == D

    def test_today_is_allowed(self, checker, seed):
        assert checker.is_available(seed['equipment']['Kayak K-01'], D, D) is True

    @pytest.mark.parametrize('value', ['2030-13-01', '2030-01-32', 'next week'])
    def test_malformed_date(self, checker, seed, value):
        with pytest.raises(InvalidRangeError):
            checker.is_available(seed['equipment']['Kayak K-01'], value, '2030-02-01')

    def test_strings_and_datetimes_accepted(self, checker, seed):
        kayak = seed['equipment']['Kayak K-01']

        assert checker.is_available(kayak, '2030-01-12', '2030-01-14') is True
        assert checker.is_available(kayak, datetime(2030, 1, 12, 8, 0), datetime(2030, 1, 14, 20, 0)) is True
        assert checker.validate_dates(datetime(2030, 1, 12, 8, 0), '2030-01-14') == (days(2), days(4))

    def test_unknown_equipment(self, checker):
        with pytest.raises(NotFoundError):
            checker.is_available(9999, days(1), days(2))


class TestOverlap:
    """Inclusive overlap against active reservations."""

    def test_free_equipment(self, checker, seed):
        assert checker.is_available(seed['equipment']['Kayak K-01'], days(1), days(3))

    def test_non_overlapping_ranges_both_book(self, service, customer, seed):
        kayak = seed['equipment']['Kayak K-01']
        playa = seed['destinations']['Playa Blanca']

        first = service.create(customer, days(1), days(3), playa, [kayak])
        second = service.create(customer, days(4), days(6), playa, [kayak])

        assert first['id'] != second['id']

    def test_overlapping_range_conflicts(self, service, checker, customer, seed):
        kayak = seed['equipment']['Kayak K-01']
        playa = seed['destinations']['Playa Blanca']
        service.create(customer, days(1), days(5), playa, [kayak])

        assert checker.is_available(kayak, days(3), days(8)) is False
        with pytest.raises(ConflictError) as exc_info:
            service.create(customer, days(3), days(8), playa, [kayak])
        assert exc_info.value.equipment_id == kayak
        assert exc_info.value.retryable is False

    def test_shared_boundary_day_conflicts(self, service, checker, customer, seed):
        """End dates are inclusive, so ending on the day another starts overlaps."""
        kayak = seed['equipment']['Kayak K-01']
        service.create(customer, days(1), days(5), seed['destinations']['Playa Blanca'], [kayak])

        assert checker.is_available(kayak, days(5), days(7)) is False
        assert checker.is_available(kayak, days(6), days(7)) is True

    def test_cancelled_does_not_block(self, service, checker, customer, seed):
        kayak = seed['equipment']['Kayak K-01']
        reservation = service.create(customer, days(1), days(5), seed['destinations']['Playa Blanca'], [kayak])
        service.cancel(reservation['id'])

        assert checker.is_available(kayak, days(1), days(5)) is True

    def test_confirmed_blocks(self, service, checker, customer, seed):
        kayak = seed['equipment']['Kayak K-01']
        reservation = service.create(customer, days(1), days(5), seed['destinations']['Playa Blanca'], [kayak])
        service.confirm(reservation['id'])

        assert checker.is_available(kayak, days(2), days(2)) is False

    def test_finished_does_not_block(self, service, checker, clock, customer, seed):
        kayak = seed['equipment']['Kayak K-01']
        reservation = service.create(customer, days(1), days(2), seed['destinations']['Playa Blanca'], [kayak])
        service.confirm(reservation['id'])
        clock.today = days(2)
        service.sweep()
        assert service.get_reservation(reservation['id'])['state'] == 'FINISHED'

        assert checker.is_available(kayak, days(2), days(3)) is True

    def test_other_equipment_unaffected(self, service, checker, customer, seed):
        service.create(customer, days(1), days(5), seed['destinations']['Playa Blanca'],
                       [seed['equipment']['Kayak K-01']])

        assert checker.is_available(seed['equipment']['Kayak K-02'], days(1), days(5)) is True


class TestAvailabilityFlag:
    """Equipment flagged unavailable is never bookable."""

    def test_flag_false(self, service, checker, customer, seed):
        from models.equipment import set_equipment_availability

        surfboard = seed['equipment']['Surfboard S-01']
        set_equipment_availability(surfboard, False)

        assert checker.is_available(surfboard, days(1), days(2)) is False
        assert checker.is_available(surfboard, days(100), days(200)) is False
        with pytest.raises(UnavailableError) as exc_info:
            service.create(customer, days(1), days(2), seed['destinations']['Playa Blanca'], [surfboard])
        assert exc_info.value.equipment_id == surfboard


class TestAvailableEquipment:
    """Destination-wide availability listing."""

    def test_lists_free_items(self, service, checker, customer, seed):
        playa = seed['destinations']['Playa Blanca']
        service.create(customer, days(1), days(3), playa, [seed['equipment']['Kayak K-01']])

        names = {e['name'] for e in checker.available_equipment(playa, days(2), days(2))}

        assert names == {'Kayak K-02', 'Surfboard S-01'}

    def test_excludes_flagged_items(self, checker, seed):
        from models.equipment import set_equipment_availability

        set_equipment_availability(seed['equipment']['Kayak K-02'], False)
        names = {e['name'] for e in checker.available_equipment(seed['destinations']['Playa Blanca'],
                                                                days(1), days(1))}

        assert 'Kayak K-02' not in names

    def test_unknown_destination(self, checker):
        with pytest.raises(NotFoundError):
            checker.available_equipment(9999, days(1), days(2))

    def test_single_conflict_query(self):
        """Conflicts for the whole destination come from one store call."""
        equipment = [
            {'id': i, 'name': f'Item {i}', 'available': True, 'rental_price': Decimal('10')}
            for i in range(1, 6)
        ]
        calls = []

        def find_conflicts(ids, start, end, exclude_reservation_id=None):
            calls.append(list(ids))
            return [{'equipment_id': 2, 'reservation_id': 1, 'start_date': start, 'end_date': end,
                     'state': 'PENDING'}]

        catalog = SimpleNamespace(
            get_destination_by_id=lambda destination_id: {'id': destination_id},
            get_equipment_by_destination=lambda destination_id: equipment,
        )
        reservations = SimpleNamespace(find_conflicts=find_conflicts)
        clock = SimpleNamespace(get_today=lambda: D)

        result = AvailabilityChecker(catalog, reservations, clock).available_equipment(1, days(1), days(2))

        assert [e['id'] for e in result] == [1, 3, 4, 5]
        assert calls == [[1, 2, 3, 4, 5]]


class TestEnsureBookable:
    """Fail-fast checks used by create and modify."""

    def test_first_problem_wins(self, service, checker, customer, seed):
        from models.equipment import set_equipment_availability

        kayak1 = seed['equipment']['Kayak K-01']
        kayak2 = seed['equipment']['Kayak K-02']
        service.create(customer, days(1), days(3), seed['destinations']['Playa Blanca'], [kayak2])
        set_equipment_availability(kayak1, False)

        with pytest.raises(UnavailableError):
            checker.ensure_bookable([kayak1, kayak2], days(1), days(3))
        with pytest.raises(ConflictError):
            checker.ensure_bookable([kayak2, kayak1], days(1), days(3))
        with pytest.raises(NotFoundError):
            checker.ensure_bookable([9999, kayak2], days(1), days(3))

    def test_exclude_own_reservation(self, service, checker, customer, seed):
        kayak = seed['equipment']['Kayak K-01']
        reservation = service.create(customer, days(1), days(3), seed['destinations']['Playa Blanca'], [kayak])

        result = checker.ensure_bookable([kayak], days(2), days(4), exclude_reservation_id=reservation['id'])

        assert [e['id'] for e in result] == [kayak]


class TestDestinationCapacity:
    """Overlapping active reservations against max_capacity."""

    def test_unlimited(self, checker, seed):
        assert checker.destination_has_capacity(seed['destinations']['Rio Suarez'], days(1), days(2))

    def test_capacity_reached(self, service, checker, customer, seed):
        from models.destination import create_destination

        small = create_destination('Laguna', 'Boyaca', 'Tota', max_capacity=1)
        assert checker.destination_has_capacity(small, days(1), days(2)) is True

        service.create(customer, days(1), days(2), small, [seed['equipment']['Kayak K-01']])

        assert checker.destination_has_capacity(small, days(2), days(3)) is False
        assert checker.destination_has_capacity(small, days(3), days(4)) is True
