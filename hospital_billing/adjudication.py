"""
Insurance adjudication.

Splits a bill into the amount covered by the patient's insurance profile and
the amount the patient pays. Each provider type has its own pure rule
function; ``adjudicate`` dispatches on the profile's ``provider_type`` tag.
"""

import logging
import re
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from .exceptions import AdjudicationInvariantError, TierNotFoundError
from .models import (
    AdjudicationResult,
    Bill,
    BillLineItem,
    GovernmentSubsidy,
    InsuranceProfile,
    InsuranceStatus,
    PrivatePolicy,
    RuleApplication,
)
from .money import ZERO, percent_of, to_money

logger = logging.getLogger(__name__)

# Rule names recorded on AdjudicationResult.rules_applied
RULE_POLICY_STATUS = "policy_status"
RULE_SUBSIDY_TIER = "subsidy_tier"
RULE_SUBSIDY_CAP = "subsidy_cap"
RULE_EXCLUSION_PARTITION = "exclusion_partition"
RULE_CO_PAY = "co_pay"
RULE_COVERAGE_LIMIT = "coverage_limit"


def _adjudicate_government(
    bill: Bill,
    profile: GovernmentSubsidy
) -> Tuple[Decimal, List[RuleApplication], Optional[Decimal]]:
    """
    Apply a means-tested subsidy.

    The income bracket must match a tier exactly. Covered amount is the
    tier percentage of the grand total, limited by the tier cap if one is set.

    Returns:
        Tuple of (covered amount, rule applications, ceiling on coverage)

    Raises:
        TierNotFoundError: If the bracket has no tier
    """
    tier = profile.tiers.get(profile.income_bracket)
    if tier is None:
        raise TierNotFoundError(profile.income_bracket)

    rules: List[RuleApplication] = []
    covered = percent_of(bill.grand_total, tier.percentage)
    rules.append(RuleApplication(
        rule_name=RULE_SUBSIDY_TIER,
        amount=covered,
        detail=f"Bracket {profile.income_bracket}: {tier.percentage}% of {bill.grand_total}",
    ))

    if tier.cap is not None and covered > tier.cap:
        rules.append(RuleApplication(
            rule_name=RULE_SUBSIDY_CAP,
            amount=covered - tier.cap,
            detail=f"Subsidy capped at {tier.cap}",
        ))
        covered = tier.cap

    return covered, rules, tier.cap


def _is_excluded(line: BillLineItem, categories: Tuple[str, ...], patterns: List[re.Pattern]) -> Optional[str]:
    """Return the reason a line is excluded, or None if it is eligible."""
    if line.category in categories:
        return f"category {line.category}"
    for pattern in patterns:
        if pattern.search(line.code_id):
            return f"code matches {pattern.pattern}"
    return None


def _adjudicate_private(
    bill: Bill,
    profile: PrivatePolicy
) -> Tuple[Decimal, List[RuleApplication], Optional[Decimal]]:
    """
    Apply a private insurer policy.

    Order of evaluation:
    1. Partition lines into excluded and eligible; excluded lines are fully
       patient-payable
    2. Patient co-pay: copay_percentage of the eligible sum
    3. Insurer's remaining portion is capped at the coverage limit; the
       overflow shifts to the patient

    Returns:
        Tuple of (covered amount, rule applications, ceiling on coverage)
    """
    rules: List[RuleApplication] = []
    patterns = [re.compile(p, re.IGNORECASE) for p in profile.excluded_code_patterns]

    excluded_total = ZERO
    eligible_total = ZERO
    reasons: List[str] = []
    for line in bill.line_items:
        reason = _is_excluded(line, profile.excluded_categories, patterns)
        if reason:
            excluded_total += line.line_total
            reasons.append(f"line {line.line_number} {line.code_id} ({reason})")
        else:
            eligible_total += line.line_total

    rules.append(RuleApplication(
        rule_name=RULE_EXCLUSION_PARTITION,
        amount=excluded_total,
        detail="; ".join(reasons) if reasons else "No excluded lines",
    ))

    copay = percent_of(eligible_total, profile.copay_percentage)
    rules.append(RuleApplication(
        rule_name=RULE_CO_PAY,
        amount=copay,
        detail=f"{profile.copay_percentage}% of eligible {eligible_total}",
    ))

    covered = eligible_total - copay
    if covered > profile.coverage_limit:
        rules.append(RuleApplication(
            rule_name=RULE_COVERAGE_LIMIT,
            amount=covered - profile.coverage_limit,
            detail=f"Coverage limited to {profile.coverage_limit}",
        ))
        covered = profile.coverage_limit

    return covered, rules, profile.coverage_limit


RuleFunction = Callable[[Bill, InsuranceProfile], Tuple[Decimal, List[RuleApplication], Optional[Decimal]]]

PROVIDER_RULES: Dict[str, RuleFunction] = {
    "government": _adjudicate_government,
    "private": _adjudicate_private,
}


def _check_invariants(bill: Bill, covered: Decimal, payable: Decimal, ceiling: Optional[Decimal]) -> None:
    """
    Raises:
        AdjudicationInvariantError: If the split does not reconcile with the bill
    """
    total = bill.grand_total
    if covered + payable != total:
        raise AdjudicationInvariantError(
            f"Bill {bill.bill_id}: covered {covered} + payable {payable} != total {total}"
        )
    if covered < ZERO or covered > total:
        raise AdjudicationInvariantError(
            f"Bill {bill.bill_id}: covered {covered} outside 0..{total}"
        )
    if ceiling is not None and covered > ceiling:
        raise AdjudicationInvariantError(
            f"Bill {bill.bill_id}: covered {covered} exceeds limit {ceiling}"
        )


def adjudicate(
    bill: Bill,
    profile: InsuranceProfile,
    rules: Optional[Dict[str, RuleFunction]] = None
) -> AdjudicationResult:
    """
    Determine covered and patient-payable amounts for a bill.

    Args:
        bill: Finalized bill
        profile: Patient's insurance profile (government or private)
        rules: Provider type -> rule function table (defaults to PROVIDER_RULES)

    Returns:
        AdjudicationResult with the split and the rules applied in order

    Raises:
        TierNotFoundError: If a government profile's bracket has no tier
        AdjudicationInvariantError: If the computed split does not reconcile
        ValueError: If the profile's provider type is not supported
    """
    provider_type = profile.provider_type
    rule_table = PROVIDER_RULES if rules is None else rules

    if profile.status != InsuranceStatus.ACTIVE:
        covered = ZERO
        applied = [RuleApplication(
            rule_name=RULE_POLICY_STATUS,
            amount=bill.grand_total,
            detail=f"Policy status is {profile.status.value}; nothing covered",
        )]
        ceiling: Optional[Decimal] = ZERO
    else:
        rule_function = rule_table.get(provider_type)
        if rule_function is None:
            raise ValueError(f"Unsupported insurance provider type: {provider_type}")
        covered, applied, ceiling = rule_function(bill, profile)

    covered = to_money(covered)
    payable = bill.grand_total - covered
    _check_invariants(bill, covered, payable, ceiling)

    for application in applied:
        logger.debug(f"Bill {bill.bill_id}: {application.rule_name} {application.amount} ({application.detail})")
    logger.info(f"Adjudicated bill {bill.bill_id} ({provider_type}): covered {covered}, patient pays {payable}")

    return AdjudicationResult(
        bill_id=bill.bill_id,
        provider_type=provider_type,
        grand_total=bill.grand_total,
        covered_amount=covered,
        patient_payable=payable,
        rules_applied=tuple(applied),
    )


class InsuranceAdjudicator:
    """
    Object wrapper around the provider dispatch table.

    Example:
        >>> adjudicator = InsuranceAdjudicator()
        >>> result = adjudicator.adjudicate(bill, patient.insurance_profile)
        >>> print(result.covered_amount, result.patient_payable)
    """

    def __init__(self, rules: Optional[Dict[str, RuleFunction]] = None):
        self.rules = dict(PROVIDER_RULES if rules is None else rules)

    def supports(self, provider_type: str) -> bool:
        return provider_type in self.rules

    def adjudicate(self, bill: Bill, profile: InsuranceProfile) -> AdjudicationResult:
        """Adjudicate using this adjudicator's rule table. See ``adjudicate``."""
        return adjudicate(bill, profile, rules=self.rules)
