"""
Main billing and claims interface.

Provides the primary interface for turning a closed visit into a bill, an
adjudication and an insurance claim.
"""

import logging
from pathlib import Path
from typing import Optional

from .adjudication import InsuranceAdjudicator
from .billing import BillBuilder
from .claims import Claim, ClaimRecordManager
from .code_registry import CodeRegistry, create_default_code_registry
from .encounter import EncounterAggregator
from .exceptions import MissingInsuranceProfileError
from .models import AdjudicationResult, Bill, InsuranceProfile
from .records import InMemoryRecordDirectory, JsonCatalogSource, JsonRecordDirectory

logger = logging.getLogger(__name__)


class HospitalBillingEngine:
    """
    Orchestrates billing and adjudication for hospital visits.

    This class wires the pipeline together:
    1. Resolving a visit's charges and ward stays through the code registry
    2. Building an immutable bill from the closed encounter
    3. Adjudicating the bill against the patient's insurance profile
    4. Creating and advancing the insurance claim

    Example:
        >>> engine = HospitalBillingEngine(data_directory=Path("data"))
        >>> claim = engine.process_visit("V-1001")
        >>> print(claim.status, claim.result.covered_amount)
    """

    def __init__(
        self,
        registry: Optional[CodeRegistry] = None,
        records=None,
        sink=None,
        data_directory: Optional[Path] = None,
        claim_manager: Optional[ClaimRecordManager] = None
    ):
        """
        Initialize the engine.

        Args:
            registry: Optional pre-loaded code registry. If not provided, it is
                     loaded from data_directory, or the default sample catalog
                     is used.
            records: Optional record directory (get_patient / get_visit). If not
                    provided, records are read from data_directory, or an empty
                    in-memory directory is used.
            sink: Optional persistence sink receiving bills and claim snapshots
            data_directory: Optional directory with codes.json, patients.json
                           and visits.json
            claim_manager: Optional pre-configured claim manager
        """
        if registry is not None:
            self.registry = registry
        elif data_directory and (Path(data_directory) / "codes.json").exists():
            self.registry = CodeRegistry.from_source(JsonCatalogSource(data_directory))
        else:
            self.registry = create_default_code_registry()

        if records is not None:
            self.records = records
        elif data_directory:
            self.records = JsonRecordDirectory(data_directory)
        else:
            self.records = InMemoryRecordDirectory()

        self.sink = sink
        self.adjudicator = InsuranceAdjudicator()
        self.claims = claim_manager or ClaimRecordManager(sink=sink)

    def build_bill(self, visit_id: str) -> Bill:
        """
        Build the bill for a closed visit.

        Args:
            visit_id: Visit identifier

        Returns:
            Immutable Bill

        Raises:
            UnknownRecordError: If the visit does not exist
            UnknownCodeError: If a charge references an unknown code
            InvalidQuantityError: If a charge has a non-positive quantity
            EncounterNotClosedError: If the visit is not discharged or cancelled
        """
        visit = self.records.get_visit(visit_id)
        encounter = EncounterAggregator.from_visit(visit, self.registry)
        bill = BillBuilder(encounter).build()
        if self.sink is not None:
            self.sink.save_bill(bill)
        return bill

    def adjudicate(self, bill: Bill, insurance_profile: InsuranceProfile) -> AdjudicationResult:
        """
        Adjudicate a bill against an insurance profile.

        Raises:
            TierNotFoundError: If a government bracket has no subsidy tier
            AdjudicationInvariantError: If covered and payable do not reconcile
        """
        return self.adjudicator.adjudicate(bill, insurance_profile)

    def adjudicate_for_patient(self, bill: Bill) -> AdjudicationResult:
        """
        Adjudicate a bill against the billed patient's own insurance profile.

        Raises:
            MissingInsuranceProfileError: If the patient has no profile
        """
        patient = self.records.get_patient(bill.patient_id)
        if patient.insurance_profile is None:
            raise MissingInsuranceProfileError(patient.patient_id)
        return self.adjudicate(bill, patient.insurance_profile)

    def create_claim(self, bill: Bill, adjudication_result: AdjudicationResult) -> Claim:
        """Create a DRAFT claim for an adjudicated bill."""
        return self.claims.create_claim(bill, adjudication_result)

    def submit_claim(self, claim: Claim) -> Claim:
        """
        Submit a DRAFT claim.

        Raises:
            InvalidTransitionError: If the claim is not in DRAFT
        """
        return self.claims.submit_claim(claim)

    def review_claim(self, claim: Claim) -> Claim:
        """Put a submitted claim under review and record the decision."""
        return self.claims.review_claim(claim)

    def process_visit(self, visit_id: str, review: bool = False) -> Claim:
        """
        Run the full pipeline for a visit: bill, adjudicate, claim, submit.

        Args:
            visit_id: Visit identifier
            review: Also review and decide the claim

        Returns:
            The submitted (or decided) claim
        """
        bill = self.build_bill(visit_id)
        result = self.adjudicate_for_patient(bill)
        claim = self.create_claim(bill, result)
        self.submit_claim(claim)
        if review:
            self.review_claim(claim)
        logger.info(f"Processed visit {visit_id}: claim {claim.claim_id} is {claim.status.value}")
        return claim
