#!/usr/bin/env python
"""
Command-line interface for hospital billing and claim adjudication.

Quick tool for looking up codes, printing visit bills and running a visit
through adjudication and the claim lifecycle.
"""

import argparse
import logging
import sys
from pathlib import Path

from hospital_billing import BillingError, HospitalBillingEngine
from hospital_billing.money import format_money
from hospital_billing.reports import bill_to_frame, category_summary

DEFAULT_DATA_DIR = Path(__file__).parent / "data"


def make_engine(args) -> HospitalBillingEngine:
    return HospitalBillingEngine(data_directory=args.data_dir)


def print_bill(bill):
    print("\n" + "=" * 72)
    print(f"BILL {bill.bill_id}")
    print("=" * 72)
    print(f"Patient: {bill.patient_id}    Visit: {bill.visit_id}")
    print()
    print(f"{'#':<4} {'Code':<16} {'Description':<30} {'Qty':>6} {'Total':>12}")
    print("-" * 72)
    for line in bill.line_items:
        print(
            f"{line.line_number:<4} {line.code_id:<16} {line.description[:30]:<30} "
            f"{line.quantity:>6} {format_money(line.line_total):>12}"
        )
    print("-" * 72)
    print(f"{'GRAND TOTAL':<58} {format_money(bill.grand_total):>12}")
    print()
    print("By category:")
    for _, row in category_summary(bill).iterrows():
        print(f"  {row['category']:<16} {row['lines']:>3} lines  ${row['subtotal']:>12,.2f}")
    print("=" * 72)


def lookup_code(args):
    """Look up code information."""
    engine = make_engine(args)

    code = engine.registry.get_code(args.code)
    if code is None:
        print(f"\nERROR: Code {args.code} not found in catalog", file=sys.stderr)
        sys.exit(1)

    print("\n" + "=" * 60)
    print("CODE INFORMATION")
    print("=" * 60)
    print(f"Code:        {code.code_id}")
    print(f"Description: {code.description}")
    print(f"Type:        {code.code_type.value}")
    print(f"Category:    {code.category}")
    print(f"Unit Price:  {format_money(code.unit_price)}")
    print("=" * 60)
    print()


def show_bill(args):
    """Build and print the bill for a visit."""
    engine = make_engine(args)

    try:
        bill = engine.build_bill(args.visit_id)
    except BillingError as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        sys.exit(1)

    if args.csv:
        bill_to_frame(bill).to_csv(sys.stdout, index=False)
        return

    print_bill(bill)
    print()


def process_claim(args):
    """Bill, adjudicate and claim a visit."""
    engine = make_engine(args)

    try:
        claim = engine.process_visit(args.visit_id, review=not args.no_review)
    except BillingError as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        sys.exit(1)

    result = claim.result
    print("\n" + "=" * 60)
    print("CLAIM ADJUDICATION RESULT")
    print("=" * 60)
    print(f"Claim:           {claim.claim_id}")
    print(f"Bill:            {claim.bill_id}")
    print(f"Provider Type:   {result.provider_type}")
    print()
    print(f"Bill Total:      {format_money(result.grand_total)}")
    print(f"Covered:         {format_money(result.covered_amount)}")
    print(f"Patient Payable: {format_money(result.patient_payable)}")
    print()
    print("Rules Applied:")
    for application in result.rules_applied:
        print(f"  {application.rule_name:<20} {format_money(application.amount):>12}  {application.detail}")
    print()
    print(f"STATUS: {claim.status.value}")
    print("=" * 60)
    print("\nHistory:")
    for change in claim.history:
        source = change.from_status.value if change.from_status else "-"
        print(f"  {change.changed_at:%Y-%m-%d %H:%M:%S}  {source:>18} -> {change.to_status.value:<18} {change.note}")
    print()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Hospital Billing & Claims CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Look up a ward day rate
  %(prog)s lookup-code WARD-ICU

  # Print the bill for a discharged visit
  %(prog)s bill V-1001

  # Export the bill lines as CSV
  %(prog)s bill V-1001 --csv > bill.csv

  # Adjudicate and claim a visit against the patient's insurance
  %(prog)s claim V-1002
        """
    )
    parser.add_argument('--data-dir', type=Path, default=DEFAULT_DATA_DIR,
                        help='Directory with codes.json, patients.json and visits.json')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    lookup_parser = subparsers.add_parser('lookup-code', help='Look up code information')
    lookup_parser.add_argument('code', help='Diagnostic, procedure or service code')
    lookup_parser.set_defaults(func=lookup_code)

    bill_parser = subparsers.add_parser('bill', help='Build the bill for a visit')
    bill_parser.add_argument('visit_id', help='Visit identifier')
    bill_parser.add_argument('--csv', action='store_true', help='Write bill lines as CSV to stdout')
    bill_parser.set_defaults(func=show_bill)

    claim_parser = subparsers.add_parser('claim', help='Adjudicate a visit and create its claim')
    claim_parser.add_argument('visit_id', help='Visit identifier')
    claim_parser.add_argument('--no-review', action='store_true', help='Stop after submitting the claim')
    claim_parser.set_defaults(func=process_claim)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == '__main__':
    main()
