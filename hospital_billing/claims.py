"""
Insurance claim lifecycle.

A claim wraps an adjudication result and moves through a one-way status
machine:

    DRAFT -> SUBMITTED -> UNDER_REVIEW -> APPROVED | PARTIALLY_APPROVED | REJECTED

Status changes are the only mutation a claim allows, and every change is
recorded in an append-only history.
"""

import logging
import threading
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .exceptions import AdjudicationInvariantError, InvalidTransitionError, UnknownClaimError
from .models import AdjudicationResult, Bill
from .money import ZERO

logger = logging.getLogger(__name__)


class ClaimStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    REJECTED = "REJECTED"


TRANSITIONS: Dict[ClaimStatus, FrozenSet[ClaimStatus]] = {
    ClaimStatus.DRAFT: frozenset({ClaimStatus.SUBMITTED}),
    ClaimStatus.SUBMITTED: frozenset({ClaimStatus.UNDER_REVIEW}),
    ClaimStatus.UNDER_REVIEW: frozenset({
        ClaimStatus.APPROVED,
        ClaimStatus.PARTIALLY_APPROVED,
        ClaimStatus.REJECTED,
    }),
    ClaimStatus.APPROVED: frozenset(),
    ClaimStatus.PARTIALLY_APPROVED: frozenset(),
    ClaimStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def generate_claim_id(now: Optional[datetime] = None) -> str:
    """Claim identifier in the form CLM-YYYYMMDD-XXXXXXXX."""
    now = now or datetime.now()
    return f"CLM-{now:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def decision_for(result: AdjudicationResult) -> ClaimStatus:
    """
    Terminal status implied by an adjudication result.

    Nothing covered -> REJECTED, everything covered -> APPROVED, anything in
    between -> PARTIALLY_APPROVED.
    """
    if result.covered_amount == ZERO or result.rule("policy_status") is not None:
        return ClaimStatus.REJECTED
    if result.covered_amount == result.grand_total:
        return ClaimStatus.APPROVED
    return ClaimStatus.PARTIALLY_APPROVED


class StatusChange(BaseModel):
    """One entry in a claim's audit trail."""

    model_config = ConfigDict(frozen=True)

    from_status: Optional[ClaimStatus]
    to_status: ClaimStatus
    changed_at: datetime
    note: str = ""


class ClaimRecord(BaseModel):
    """Immutable snapshot of a claim, as handed to persistence."""

    model_config = ConfigDict(frozen=True)

    claim_id: str
    patient_id: str
    bill_id: str
    status: ClaimStatus
    result: AdjudicationResult
    history: Tuple[StatusChange, ...]


class Claim:
    """
    An insurance claim for one bill.

    Transitions are compare-and-swap on the current status under a per-claim
    lock; a rejected transition leaves the claim exactly as it was.
    """

    def __init__(
        self,
        claim_id: str,
        patient_id: str,
        bill_id: str,
        result: AdjudicationResult,
        clock: Callable[[], datetime] = datetime.now
    ):
        self._claim_id = claim_id
        self._patient_id = patient_id
        self._bill_id = bill_id
        self._result = result
        self._clock = clock
        self._status = ClaimStatus.DRAFT
        self._history: List[StatusChange] = [
            StatusChange(from_status=None, to_status=ClaimStatus.DRAFT, changed_at=clock(), note="Claim created")
        ]
        self._lock = threading.Lock()

    @property
    def claim_id(self) -> str:
        return self._claim_id

    @property
    def patient_id(self) -> str:
        return self._patient_id

    @property
    def bill_id(self) -> str:
        return self._bill_id

    @property
    def status(self) -> ClaimStatus:
        return self._status

    @property
    def result(self) -> AdjudicationResult:
        return self._result

    @property
    def history(self) -> Tuple[StatusChange, ...]:
        return tuple(self._history)

    @property
    def is_terminal(self) -> bool:
        return self._status in TERMINAL_STATUSES

    def transition(self, expected: ClaimStatus, new: ClaimStatus, note: str = "") -> ClaimStatus:
        """
        Move from ``expected`` to ``new`` if the claim is still in ``expected``.

        Args:
            expected: Status the caller believes the claim is in
            new: Requested status
            note: Optional note recorded in the history

        Returns:
            The new status

        Raises:
            InvalidTransitionError: If the claim is not in ``expected`` or the
                transition table does not allow ``expected -> new``
        """
        with self._lock:
            current = self._status
            if current != expected or new not in TRANSITIONS[current]:
                raise InvalidTransitionError(self.claim_id, current, new)
            self._status = new
            self._history.append(
                StatusChange(from_status=current, to_status=new, changed_at=self._clock(), note=note)
            )
        logger.info(f"Claim {self.claim_id}: {current.value} -> {new.value}")
        return new

    def submit(self) -> ClaimStatus:
        """DRAFT -> SUBMITTED."""
        return self.transition(ClaimStatus.DRAFT, ClaimStatus.SUBMITTED, "Submitted to insurer")

    def start_review(self) -> ClaimStatus:
        """SUBMITTED -> UNDER_REVIEW."""
        return self.transition(ClaimStatus.SUBMITTED, ClaimStatus.UNDER_REVIEW, "Review started")

    def decide(self) -> ClaimStatus:
        """UNDER_REVIEW -> the outcome implied by the adjudication result."""
        outcome = decision_for(self._result)
        note = f"Covered {self._result.covered_amount} of {self._result.grand_total}"
        return self.transition(ClaimStatus.UNDER_REVIEW, outcome, note)

    def reject(self, reason: str) -> ClaimStatus:
        """Reviewer rejection from UNDER_REVIEW, regardless of coverage."""
        return self.transition(ClaimStatus.UNDER_REVIEW, ClaimStatus.REJECTED, reason)

    def snapshot(self) -> ClaimRecord:
        with self._lock:
            return ClaimRecord(
                claim_id=self.claim_id,
                patient_id=self.patient_id,
                bill_id=self.bill_id,
                status=self._status,
                result=self._result,
                history=tuple(self._history),
            )

    def __repr__(self) -> str:
        return f"Claim({self.claim_id!r}, status={self._status.value})"


class ClaimRecordManager:
    """
    Creates claims from adjudication results and tracks them by id.

    Every new claim and every status change is pushed to the persistence sink
    as an immutable ClaimRecord.
    """

    def __init__(
        self,
        sink=None,
        id_factory: Callable[[], str] = generate_claim_id,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Args:
            sink: Optional persistence sink exposing ``save_claim(record)``
            id_factory: Callable returning a fresh claim identifier
            clock: Callable returning the current time for audit entries
        """
        self.sink = sink
        self.id_factory = id_factory
        self.clock = clock
        self._claims: Dict[str, Claim] = {}
        self._lock = threading.Lock()

    def create_claim(self, bill: Bill, result: AdjudicationResult) -> Claim:
        """
        Create a DRAFT claim for a bill.

        Raises:
            AdjudicationInvariantError: If the result belongs to a different bill,
                was computed against a different total or does not split it exactly
        """
        if result.bill_id != bill.bill_id:
            raise AdjudicationInvariantError(
                f"Adjudication result for {result.bill_id} cannot be claimed against {bill.bill_id}"
            )
        if result.grand_total != bill.grand_total:
            raise AdjudicationInvariantError(
                f"Adjudication total {result.grand_total} does not match bill total {bill.grand_total}"
            )
        covered, payable = result.covered_amount, result.patient_payable
        if covered < 0 or covered > bill.grand_total or covered + payable != bill.grand_total:
            raise AdjudicationInvariantError(
                f"Adjudication of {bill.bill_id} does not reconcile: "
                f"covered {covered} + payable {payable} against total {bill.grand_total}"
            )

        claim = Claim(self.id_factory(), bill.patient_id, bill.bill_id, result, clock=self.clock)
        with self._lock:
            self._claims[claim.claim_id] = claim
        logger.info(f"Created claim {claim.claim_id} for bill {bill.bill_id}")
        self._persist(claim)
        return claim

    def get_claim(self, claim_id: str) -> Claim:
        with self._lock:
            claim = self._claims.get(claim_id)
        if claim is None:
            raise UnknownClaimError(claim_id)
        return claim

    def claims_for_bill(self, bill_id: str) -> List[Claim]:
        with self._lock:
            return [claim for claim in self._claims.values() if claim.bill_id == bill_id]

    def submit_claim(self, claim: Claim) -> Claim:
        """
        Submit a DRAFT claim.

        Raises:
            InvalidTransitionError: If the claim is not in DRAFT
        """
        claim.submit()
        self._persist(claim)
        return claim

    def review_claim(self, claim: Claim) -> Claim:
        """Start review of a submitted claim and record the decision."""
        claim.start_review()
        self._persist(claim)
        claim.decide()
        self._persist(claim)
        return claim

    def reject_claim(self, claim: Claim, reason: str) -> Claim:
        claim.reject(reason)
        self._persist(claim)
        return claim

    def __len__(self) -> int:
        with self._lock:
            return len(self._claims)

    def _persist(self, claim: Claim) -> None:
        if self.sink is not None:
            self.sink.save_claim(claim.snapshot())
