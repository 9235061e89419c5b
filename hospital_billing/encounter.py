"""
Encounter aggregation.

Collects the billable events of one visit (ward stays, consultations,
procedures, diagnostics) into an ordered list of chargeable occurrences.
"""

import logging
import threading
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from .code_registry import CodeRegistry
from .exceptions import EncounterClosedError, InvalidQuantityError, InvalidTimestampError
from .models import ChargeableOccurrence, Visit
from .money import Number, to_decimal, to_money

logger = logging.getLogger(__name__)

# Largest amount a single bill line may carry
MAX_LINE_TOTAL = Decimal("1000000000000.00")


def is_aware(timestamp: datetime) -> bool:
    return timestamp.tzinfo is not None and timestamp.utcoffset() is not None


def ward_stay_days(start: datetime, end: datetime) -> int:
    """
    Number of chargeable days for a ward stay.

    Calendar days between the two dates, with a minimum of one day for a
    same-day admission and discharge.

    Raises:
        InvalidTimestampError: If one end of the stay has a timezone and the other does not
        InvalidQuantityError: If the stay ends before it starts
    """
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        raise InvalidTimestampError((start, end), "ward stay bounds must be datetimes")
    if is_aware(start) != is_aware(end):
        raise InvalidTimestampError((start, end), "cannot mix timezone-aware and naive datetimes")
    if end < start:
        raise InvalidQuantityError(f"{start.isoformat()} -> {end.isoformat()}", "ward stay ends before it starts")
    return max(1, (end.date() - start.date()).days)


class EncounterAggregator:
    """
    Ordered collection of chargeable occurrences for one visit.

    The aggregator is mutable until ``close()`` is called. Occurrences are
    returned in chronological order; occurrences with the same timestamp
    keep their insertion order.
    """

    def __init__(self, registry: CodeRegistry, visit_id: str, patient_id: str):
        self.registry = registry
        self.visit_id = visit_id
        self.patient_id = patient_id
        self._occurrences: List[ChargeableOccurrence] = []
        self._closed = False
        self._lock = threading.Lock()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def add_occurrence(
        self,
        code_id: str,
        quantity: Number,
        timestamp: datetime,
        note: Optional[str] = None
    ) -> ChargeableOccurrence:
        """
        Record a billable event.

        The code and quantity are validated before anything is recorded, so a
        rejected call leaves the encounter unchanged.

        Args:
            code_id: Code identifier to resolve through the registry
            quantity: Units (or days) incurred; must be positive
            timestamp: When the event was incurred
            note: Optional free-text annotation carried onto the bill line

        Returns:
            The recorded ChargeableOccurrence

        Raises:
            InvalidQuantityError: If quantity is not a positive number, or the
                line it produces is too large to bill
            InvalidTimestampError: If timestamp is not a datetime, or its timezone
                awareness differs from the occurrences already recorded
            UnknownCodeError: If the code is not in the registry
            EncounterClosedError: If the encounter has been closed
        """
        qty = self._validate_quantity(quantity)
        if not isinstance(timestamp, datetime):
            raise InvalidTimestampError(timestamp, "not a datetime")
        code = self.registry.lookup(code_id)
        self._check_line_total(code.unit_price, qty)

        with self._lock:
            if self._closed:
                raise EncounterClosedError(self.visit_id)
            if self._occurrences and is_aware(self._occurrences[0].incurred_at) != is_aware(timestamp):
                raise InvalidTimestampError(timestamp, "cannot mix timezone-aware and naive datetimes")
            occurrence = ChargeableOccurrence(
                code_id=code.code_id,
                description=code.description,
                unit_price=code.unit_price,
                code_type=code.code_type,
                category=code.category,
                quantity=qty,
                incurred_at=timestamp,
                sequence=len(self._occurrences),
                note=note,
            )
            self._occurrences.append(occurrence)

        logger.debug(f"Visit {self.visit_id}: recorded {code.code_id} x {qty}")
        return occurrence

    def add_ward_stay(
        self,
        ward_code: str,
        start: datetime,
        end: datetime,
        ward_name: Optional[str] = None
    ) -> ChargeableOccurrence:
        """
        Record a ward stay charged at the ward's daily rate.

        Args:
            ward_code: Ward day-rate code (e.g. WARD-GEN-A)
            start: Admission to the ward
            end: Discharge from the ward
            ward_name: Optional ward name shown on the bill line

        Returns:
            The recorded ChargeableOccurrence, quantity = chargeable days
        """
        days = ward_stay_days(start, end)
        label = f"{start.date().isoformat()} to {end.date().isoformat()}"
        if ward_name:
            label = f"{ward_name}, {label}"
        return self.add_occurrence(ward_code, days, start, note=label)

    def close(self) -> None:
        """Close the encounter; no further occurrences may be added."""
        with self._lock:
            self._closed = True
        logger.debug(f"Visit {self.visit_id}: encounter closed with {len(self._occurrences)} occurrences")

    def occurrences(self) -> List[ChargeableOccurrence]:
        """Occurrences in chronological order, ties kept in insertion order."""
        with self._lock:
            snapshot = list(self._occurrences)
        return sorted(snapshot, key=lambda o: o.incurred_at)

    def __len__(self) -> int:
        return len(self._occurrences)

    @staticmethod
    def _validate_quantity(quantity: Number) -> Decimal:
        try:
            qty = to_decimal(quantity)
        except ValueError:
            raise InvalidQuantityError(quantity, "not a number")
        if not qty.is_finite() or qty <= 0:
            raise InvalidQuantityError(quantity, "must be greater than zero")
        return qty

    @staticmethod
    def _check_line_total(unit_price: Decimal, qty: Decimal) -> None:
        try:
            line_total = to_money(unit_price * qty)
        except (ValueError, ArithmeticError):
            raise InvalidQuantityError(qty, "line total too large")
        if line_total > MAX_LINE_TOTAL:
            raise InvalidQuantityError(qty, f"line total {line_total} exceeds {MAX_LINE_TOTAL}")

    @classmethod
    def from_visit(cls, visit: Visit, registry: CodeRegistry) -> "EncounterAggregator":
        """
        Build an aggregator from a visit record.

        Ward stays and recorded charges are added, then the encounter is
        closed if the visit itself is discharged or cancelled.

        Args:
            visit: Visit record
            registry: Code registry used to resolve codes

        Returns:
            EncounterAggregator for the visit
        """
        aggregator = cls(registry, visit.visit_id, visit.patient_id)
        for stay in visit.ward_stays:
            aggregator.add_ward_stay(stay.ward_code, stay.start, stay.end, stay.ward_name)
        for charge in visit.charges:
            aggregator.add_occurrence(charge.code, charge.quantity, charge.timestamp, charge.note)
        if visit.closed:
            aggregator.close()
        return aggregator
