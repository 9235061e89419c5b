"""
Error types raised by the billing and adjudication engine.

Every error derives from BillingError, which is itself a ValueError, so code
that already guards calls with ``except ValueError`` keeps working.
"""

from typing import Optional


class BillingError(ValueError):
    """Base class for all billing, adjudication and claim errors."""


class UnknownCodeError(BillingError):
    """A code identifier is not present in the code registry."""

    def __init__(self, code_id: str):
        self.code_id = code_id
        super().__init__(f"Unknown code: {code_id}")


class DuplicateCodeError(BillingError):
    """The catalog contains the same code identifier more than once."""

    def __init__(self, code_id: str):
        self.code_id = code_id
        super().__init__(f"Duplicate code in catalog: {code_id}")


class InvalidQuantityError(BillingError):
    """A quantity or duration is zero, negative or otherwise unusable."""

    def __init__(self, quantity, reason: Optional[str] = None):
        self.quantity = quantity
        message = f"Invalid quantity: {quantity}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidTimestampError(BillingError):
    """A timestamp is not a datetime, or mixes timezone-aware and naive values within one encounter."""

    def __init__(self, timestamp, reason: str):
        self.timestamp = timestamp
        super().__init__(f"Invalid timestamp {timestamp!r}: {reason}")


class EncounterClosedError(BillingError):
    """An occurrence was added to an encounter that has already been closed."""

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__(f"Encounter for visit {visit_id} is closed")


class EncounterNotClosedError(BillingError):
    """A bill was requested for an encounter that is still open."""

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__(f"Encounter for visit {visit_id} must be closed before billing")


class EmptyEncounterError(BillingError):
    """A bill was requested for an encounter with no chargeable occurrences."""

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__(f"Encounter for visit {visit_id} has no chargeable occurrences")


class TierNotFoundError(BillingError):
    """The patient's income bracket has no entry in the subsidy tier table."""

    def __init__(self, bracket: str):
        self.bracket = bracket
        super().__init__(f"No subsidy tier defined for income bracket: {bracket}")


class AdjudicationInvariantError(BillingError):
    """Covered and payable amounts do not reconcile with the bill."""


class InvalidTransitionError(BillingError):
    """A claim status change is not allowed from the claim's current status."""

    def __init__(self, claim_id: str, current, requested):
        self.claim_id = claim_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Claim {claim_id} cannot move from {current.value} to {requested.value}"
        )


class UnknownClaimError(BillingError):
    """No claim with the given identifier is tracked."""

    def __init__(self, claim_id: str):
        self.claim_id = claim_id
        super().__init__(f"Unknown claim: {claim_id}")


class UnknownRecordError(BillingError):
    """A patient or visit record could not be found."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"Unknown {kind}: {record_id}")


class MissingInsuranceProfileError(BillingError):
    """The patient has no insurance profile to adjudicate against."""

    def __init__(self, patient_id: str):
        self.patient_id = patient_id
        super().__init__(f"Patient {patient_id} has no insurance profile")
