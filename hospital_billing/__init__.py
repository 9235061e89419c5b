"""
Hospital Billing & Insurance Claim Adjudication

Builds bills from hospital visits and adjudicates them against government
subsidy schemes and private insurance policies, producing auditable claims.
"""

from .code_registry import Code, CodeRegistry, CodeType, create_default_code_registry
from .models import (
    AdjudicationResult,
    Bill,
    BillLineItem,
    ChargeableOccurrence,
    GovernmentSubsidy,
    InsuranceStatus,
    Patient,
    PrivatePolicy,
    RuleApplication,
    SubsidyTier,
    Visit,
    VisitCharge,
    VisitStatus,
    WardStay,
)
from .encounter import EncounterAggregator
from .billing import BillBuilder
from .adjudication import InsuranceAdjudicator, adjudicate
from .claims import Claim, ClaimRecord, ClaimRecordManager, ClaimStatus
from .records import InMemoryRecordDirectory, InMemorySink, JsonRecordDirectory
from .engine import HospitalBillingEngine
from .exceptions import (
    AdjudicationInvariantError,
    BillingError,
    EncounterClosedError,
    EncounterNotClosedError,
    InvalidQuantityError,
    InvalidTimestampError,
    InvalidTransitionError,
    TierNotFoundError,
    UnknownCodeError,
)

__version__ = "1.0.0"
__all__ = [
    "Code",
    "CodeRegistry",
    "CodeType",
    "create_default_code_registry",
    "AdjudicationResult",
    "Bill",
    "BillLineItem",
    "ChargeableOccurrence",
    "GovernmentSubsidy",
    "InsuranceStatus",
    "Patient",
    "PrivatePolicy",
    "RuleApplication",
    "SubsidyTier",
    "Visit",
    "VisitCharge",
    "VisitStatus",
    "WardStay",
    "EncounterAggregator",
    "BillBuilder",
    "InsuranceAdjudicator",
    "adjudicate",
    "Claim",
    "ClaimRecord",
    "ClaimRecordManager",
    "ClaimStatus",
    "InMemoryRecordDirectory",
    "InMemorySink",
    "JsonRecordDirectory",
    "HospitalBillingEngine",
    "AdjudicationInvariantError",
    "BillingError",
    "EncounterClosedError",
    "EncounterNotClosedError",
    "InvalidQuantityError",
    "InvalidTimestampError",
    "InvalidTransitionError",
    "TierNotFoundError",
    "UnknownCodeError",
]
