"""
End-to-end tests for the billing engine using the sample data directory.

Run with: pytest test_engine.py -v
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from hospital_billing import (
    ClaimStatus,
    EncounterNotClosedError,
    GovernmentSubsidy,
    HospitalBillingEngine,
    InMemoryRecordDirectory,
    InMemorySink,
    InvalidQuantityError,
    InvalidTransitionError,
    Patient,
    SubsidyTier,
    TierNotFoundError,
    UnknownCodeError,
    Visit,
    VisitStatus,
)
from hospital_billing.exceptions import MissingInsuranceProfileError, UnknownRecordError


DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def sink():
    return InMemorySink()


@pytest.fixture
def engine(sink):
    return HospitalBillingEngine(data_directory=DATA_DIR, sink=sink)


class TestBuildBill:
    """Test bill construction from recorded visits."""

    def test_government_visit_bill(self, engine, sink):
        """Test the bill for a discharged visit with a ward stay."""
        bill = engine.build_bill("V-1001")
        assert bill.bill_id == "BILL-V-1001"
        assert bill.patient_id == "P-001"
        assert bill.grand_total == Decimal("1082.85")
        assert [line.code_id for line in bill.line_items] == [
            "WARD-GEN-B1", "CONS-SPEC", "J18.9", "BW03ZZZ", "MED-AMOX-500",
        ]
        assert bill.line_items[0].quantity == Decimal("3")
        assert bill.line_items[0].note == "Ward 7B, 2026-03-01 to 2026-03-04"
        assert sink.bills == [bill]

    def test_build_bill_twice_identical(self, engine):
        """Test that rebuilding a visit's bill gives the same bill."""
        assert engine.build_bill("V-1002") == engine.build_bill("V-1002")

    def test_open_visit_rejected(self, engine, sink):
        """Test that an admitted visit cannot be billed yet."""
        with pytest.raises(EncounterNotClosedError):
            engine.build_bill("V-1004")
        assert sink.bills == []

    def test_unknown_visit(self, engine):
        with pytest.raises(UnknownRecordError):
            engine.build_bill("V-0000")

    def test_unknown_code_in_visit(self):
        """Test that a visit referencing an unknown code fails to bill."""
        records = InMemoryRecordDirectory(visits=[Visit.model_validate({
            "visit_id": "V-X",
            "patient_id": "P-X",
            "status": "DISCHARGED",
            "charges": [{"code": "NOT-A-CODE", "timestamp": "2026-01-01T09:00:00"}],
        })])
        engine = HospitalBillingEngine(records=records)
        with pytest.raises(UnknownCodeError):
            engine.build_bill("V-X")

    def test_invalid_quantity_in_visit(self):
        """Test that a visit with a zero quantity fails to bill."""
        records = InMemoryRecordDirectory(visits=[Visit.model_validate({
            "visit_id": "V-Y",
            "patient_id": "P-Y",
            "status": "DISCHARGED",
            "charges": [{"code": "CONS-GP", "quantity": 0, "timestamp": "2026-01-01T09:00:00"}],
        })])
        engine = HospitalBillingEngine(records=records)
        with pytest.raises(InvalidQuantityError):
            engine.build_bill("V-Y")


class TestAdjudicate:
    """Test adjudication through the engine."""

    def test_government_subsidy(self, engine):
        """Test bracket B (50%, cap 300) on the V-1001 bill."""
        bill = engine.build_bill("V-1001")
        result = engine.adjudicate_for_patient(bill)
        assert result.covered_amount == Decimal("300.00")
        assert result.patient_payable == Decimal("782.85")

    def test_private_policy(self, engine):
        """Test dental and medication exclusions with a 10% co-pay."""
        bill = engine.build_bill("V-1002")
        result = engine.adjudicate_for_patient(bill)
        assert bill.grand_total == Decimal("5046.50")
        assert result.rule("exclusion_partition").amount == Decimal("431.50")
        assert result.rule("co_pay").amount == Decimal("461.50")
        assert result.covered_amount == Decimal("4153.50")
        assert result.patient_payable == Decimal("893.00")

    def test_expired_policy(self, engine):
        bill = engine.build_bill("V-1003")
        result = engine.adjudicate_for_patient(bill)
        assert result.covered_amount == Decimal("0.00")
        assert result.patient_payable == bill.grand_total

    def test_explicit_profile(self, engine):
        """Test adjudicating against a profile supplied by the caller."""
        bill = engine.build_bill("V-1003")
        profile = GovernmentSubsidy(income_bracket="C", tiers={"C": SubsidyTier(percentage=Decimal("20"))})
        result = engine.adjudicate(bill, profile)
        assert result.covered_amount == Decimal("17.00")

    def test_missing_tier_creates_no_claim(self, engine):
        """Test that a missing tier aborts before any claim exists."""
        bill = engine.build_bill("V-1001")
        profile = GovernmentSubsidy(income_bracket="Q", tiers={"A": SubsidyTier(percentage=Decimal("50"))})
        with pytest.raises(TierNotFoundError):
            engine.adjudicate(bill, profile)
        assert len(engine.claims) == 0

    def test_patient_without_profile(self):
        """Test that a patient without insurance cannot be adjudicated."""
        records = InMemoryRecordDirectory(
            patients=[Patient(patient_id="P-N", name="No Cover")],
            visits=[Visit.model_validate({
                "visit_id": "V-N",
                "patient_id": "P-N",
                "status": "DISCHARGED",
                "charges": [{"code": "CONS-GP", "timestamp": "2026-01-01T09:00:00"}],
            })],
        )
        engine = HospitalBillingEngine(records=records)
        bill = engine.build_bill("V-N")
        with pytest.raises(MissingInsuranceProfileError):
            engine.adjudicate_for_patient(bill)


class TestClaims:
    """Test claim creation and submission through the engine."""

    def test_create_and_submit(self, engine, sink):
        """Test the documented operation sequence."""
        bill = engine.build_bill("V-1001")
        result = engine.adjudicate_for_patient(bill)
        claim = engine.create_claim(bill, result)
        assert claim.status == ClaimStatus.DRAFT

        engine.submit_claim(claim)
        assert claim.status == ClaimStatus.SUBMITTED

        with pytest.raises(InvalidTransitionError):
            engine.submit_claim(claim)
        assert claim.status == ClaimStatus.SUBMITTED
        assert [record.status for record in sink.claims] == [ClaimStatus.DRAFT, ClaimStatus.SUBMITTED]

    @pytest.mark.parametrize("visit_id, expected", [
        ("V-1001", ClaimStatus.PARTIALLY_APPROVED),
        ("V-1002", ClaimStatus.PARTIALLY_APPROVED),
        ("V-1003", ClaimStatus.REJECTED),
    ])
    def test_process_visit(self, engine, visit_id, expected):
        """Test the full pipeline through to a decision."""
        claim = engine.process_visit(visit_id, review=True)
        assert claim.status == expected
        assert claim.bill_id == f"BILL-{visit_id}"

    def test_process_visit_without_review(self, engine):
        claim = engine.process_visit("V-1001")
        assert claim.status == ClaimStatus.SUBMITTED

    def test_fully_covered_visit_approved(self):
        """Test that full coverage leads to APPROVED."""
        records = InMemoryRecordDirectory(
            patients=[Patient.model_validate({
                "patient_id": "P-F",
                "name": "Full Cover",
                "insurance_profile": {
                    "provider_type": "government",
                    "income_bracket": "A",
                    "tiers": {"A": {"percentage": "100"}},
                },
            })],
            visits=[Visit(
                visit_id="V-F",
                patient_id="P-F",
                status=VisitStatus.DISCHARGED,
                charges=[{"code": "CONS-GP", "timestamp": datetime(2026, 1, 1, 9, 0)}],
            )],
        )
        engine = HospitalBillingEngine(records=records)
        claim = engine.process_visit("V-F", review=True)
        assert claim.status == ClaimStatus.APPROVED


class TestConfiguration:
    """Test engine construction options."""

    def test_defaults(self):
        """Test that the engine works with no configuration."""
        engine = HospitalBillingEngine()
        assert engine.registry.lookup("WARD-ICU").unit_price == Decimal("2000.00")
        with pytest.raises(UnknownRecordError):
            engine.build_bill("V-1001")

    def test_data_directory_without_catalog(self, tmp_path):
        """Test that a data directory without codes.json falls back to the default catalog."""
        engine = HospitalBillingEngine(data_directory=tmp_path)
        assert "CONS-GP" in engine.registry
        assert len(engine.records.visits) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
