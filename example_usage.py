"""
Example usage of the Hospital Billing & Claims engine.

This script demonstrates building bills and adjudicating them against
government and private insurance profiles.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from hospital_billing import (
    BillBuilder,
    EncounterAggregator,
    GovernmentSubsidy,
    HospitalBillingEngine,
    InMemorySink,
    PrivatePolicy,
    SubsidyTier,
    adjudicate,
    create_default_code_registry,
)


def example_1_manual_encounter():
    """Example 1: Build a bill by hand and apply a government subsidy."""
    print("=" * 80)
    print("Example 1: Ward stay with consultation, government subsidy")
    print("=" * 80)

    registry = create_default_code_registry()
    encounter = EncounterAggregator(registry, visit_id="V-DEMO-1", patient_id="P-DEMO")

    encounter.add_ward_stay("WARD-GEN-B2", datetime(2026, 6, 1, 10, 0), datetime(2026, 6, 3, 9, 0))
    encounter.add_occurrence("CONS-GP", 1, datetime(2026, 6, 1, 10, 30))
    encounter.add_occurrence("I10", 1, datetime(2026, 6, 1, 10, 45))
    encounter.close()

    bill = BillBuilder(encounter).build()

    print(f"\nBill ID: {bill.bill_id}")
    print(f"{'Line':<6} {'Code':<14} {'Description':<40} {'Total':>12}")
    print("-" * 80)
    for line in bill.line_items:
        print(f"{line.line_number:<6} {line.code_id:<14} {line.description:<40} ${line.line_total:>10,.2f}")
    print(f"\n{'Grand Total:':<60} ${bill.grand_total:>10,.2f}")

    profile = GovernmentSubsidy(
        income_bracket="B",
        tiers={
            "A": SubsidyTier(percentage=Decimal("75")),
            "B": SubsidyTier(percentage=Decimal("50"), cap=Decimal("300.00")),
        },
    )
    result = adjudicate(bill, profile)

    print(f"\nCovered:         ${result.covered_amount:>10,.2f}")
    print(f"Patient payable: ${result.patient_payable:>10,.2f}")
    for application in result.rules_applied:
        print(f"  - {application.rule_name}: {application.amount} ({application.detail})")
    print()


def example_2_private_policy():
    """Example 2: Private policy with an excluded category."""
    print("=" * 80)
    print("Example 2: Private policy, dental excluded, 20% co-pay")
    print("=" * 80)

    registry = create_default_code_registry()
    encounter = EncounterAggregator(registry, visit_id="V-DEMO-2", patient_id="P-DEMO")
    encounter.add_occurrence("CONS-SPEC", 1, datetime(2026, 6, 5, 9, 0))
    encounter.add_occurrence("0CDWXZ1", 1, datetime(2026, 6, 5, 9, 30))
    encounter.add_occurrence("BW03ZZZ", 2, datetime(2026, 6, 5, 10, 0))
    encounter.close()
    bill = BillBuilder(encounter).build()

    policy = PrivatePolicy(
        provider_name="Harbour Life Assurance",
        coverage_limit=Decimal("250.00"),
        copay_percentage=Decimal("20"),
        excluded_categories=("DENTAL",),
    )
    result = adjudicate(bill, policy)

    print(f"\nBill total:      ${bill.grand_total:>10,.2f}")
    print(f"Covered:         ${result.covered_amount:>10,.2f}")
    print(f"Patient payable: ${result.patient_payable:>10,.2f}")
    for application in result.rules_applied:
        print(f"  - {application.rule_name}: {application.amount} ({application.detail})")
    print()


def example_3_full_pipeline():
    """Example 3: Process recorded visits end to end."""
    print("=" * 80)
    print("Example 3: Recorded visits through the claim lifecycle")
    print("=" * 80)

    sink = InMemorySink()
    engine = HospitalBillingEngine(data_directory=Path(__file__).parent / "data", sink=sink)

    for visit_id in ["V-1001", "V-1002", "V-1003"]:
        claim = engine.process_visit(visit_id, review=True)
        result = claim.result
        print(
            f"{visit_id}: {claim.claim_id}  total ${result.grand_total:,.2f}  "
            f"covered ${result.covered_amount:,.2f}  -> {claim.status.value}"
        )

    print(f"\nBills saved: {len(sink.bills)}, claim snapshots saved: {len(sink.claims)}")
    print()


if __name__ == "__main__":
    example_1_manual_encounter()
    example_2_private_policy()
    example_3_full_pipeline()
