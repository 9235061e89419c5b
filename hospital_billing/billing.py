"""
Bill construction from a closed encounter.
"""

import logging
from typing import List

from .encounter import EncounterAggregator
from .exceptions import EmptyEncounterError, EncounterNotClosedError
from .models import Bill, BillLineItem, ChargeableOccurrence
from .money import ZERO, to_money

logger = logging.getLogger(__name__)


def make_bill_id(visit_id: str) -> str:
    """One bill per visit, so the bill id is derived from the visit id."""
    return f"BILL-{visit_id}"


class BillBuilder:
    """
    Turns the occurrences of a closed encounter into a Bill.

    Each line total is unit price x quantity rounded to 0.01 (half up), and
    the grand total is accumulated line by line with the same rounding
    applied after every addition. ``build()`` reads the encounter without
    modifying it, so repeated builds yield identical bills.

    Example:
        >>> aggregator.close()
        >>> bill = BillBuilder(aggregator).build()
        >>> print(f"Total: ${bill.grand_total}")
    """

    def __init__(self, encounter: EncounterAggregator):
        self.encounter = encounter

    def build(self) -> Bill:
        """
        Build the bill.

        Returns:
            Immutable Bill with line items in chronological order

        Raises:
            EncounterNotClosedError: If the encounter is still open
            EmptyEncounterError: If the encounter has no occurrences
        """
        if not self.encounter.is_closed:
            raise EncounterNotClosedError(self.encounter.visit_id)

        occurrences = self.encounter.occurrences()
        if not occurrences:
            raise EmptyEncounterError(self.encounter.visit_id)

        line_items: List[BillLineItem] = []
        running_total = ZERO
        for line_number, occurrence in enumerate(occurrences, start=1):
            line = self._price_line(line_number, occurrence)
            running_total = to_money(running_total + line.line_total)
            line_items.append(line)

        bill = Bill(
            bill_id=make_bill_id(self.encounter.visit_id),
            patient_id=self.encounter.patient_id,
            visit_id=self.encounter.visit_id,
            line_items=tuple(line_items),
            grand_total=running_total,
        )
        logger.info(f"Built bill {bill.bill_id}: {len(line_items)} lines, total {bill.grand_total}")
        return bill

    @staticmethod
    def _price_line(line_number: int, occurrence: ChargeableOccurrence) -> BillLineItem:
        return BillLineItem(
            line_number=line_number,
            code_id=occurrence.code_id,
            description=occurrence.description,
            category=occurrence.category,
            unit_price=occurrence.unit_price,
            quantity=occurrence.quantity,
            line_total=to_money(occurrence.unit_price * occurrence.quantity),
            incurred_at=occurrence.incurred_at,
            note=occurrence.note,
        )
