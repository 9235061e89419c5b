"""
Data models for encounters, bills, insurance profiles and adjudication.
"""

import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .code_registry import CodeType
from .money import ZERO, to_money


class ChargeableOccurrence(BaseModel):
    """One billable event of an encounter: a code, a quantity and when it happened."""

    model_config = ConfigDict(frozen=True)

    code_id: str = Field(..., description="Resolved code identifier")
    description: str
    unit_price: Decimal = Field(..., ge=0)
    code_type: CodeType
    category: str
    quantity: Decimal = Field(..., gt=0, description="Units, or days for ward stays")
    incurred_at: datetime
    sequence: int = Field(..., ge=0, description="Insertion order within the encounter")
    note: Optional[str] = None


class BillLineItem(BaseModel):
    """A priced line on a bill."""

    model_config = ConfigDict(frozen=True)

    line_number: int = Field(..., ge=1)
    code_id: str
    description: str
    category: str
    unit_price: Decimal
    quantity: Decimal
    line_total: Decimal = Field(..., description="unit_price x quantity, rounded to 0.01")
    incurred_at: datetime
    note: Optional[str] = None


class Bill(BaseModel):
    """Immutable bill for one visit."""

    model_config = ConfigDict(frozen=True)

    bill_id: str
    patient_id: str
    visit_id: str
    line_items: Tuple[BillLineItem, ...]
    grand_total: Decimal

    @model_validator(mode="after")
    def check_grand_total(self) -> "Bill":
        """Grand total must equal the sum of the line totals."""
        expected = sum((line.line_total for line in self.line_items), ZERO)
        if self.grand_total != expected:
            raise ValueError(
                f"Bill {self.bill_id} grand total {self.grand_total} "
                f"does not match line totals {expected}"
            )
        return self

    def total_by_category(self) -> Dict[str, Decimal]:
        """Subtotal per code category, in order of first appearance."""
        totals: Dict[str, Decimal] = {}
        for line in self.line_items:
            totals[line.category] = to_money(totals.get(line.category, ZERO) + line.line_total)
        return totals

    def categorized_charges(self) -> Dict[str, List[BillLineItem]]:
        charges: Dict[str, List[BillLineItem]] = {}
        for line in self.line_items:
            charges.setdefault(line.category, []).append(line)
        return charges


class InsuranceStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    PENDING = "PENDING"


class SubsidyTier(BaseModel):
    """Share of the bill the government pays for one income bracket."""

    model_config = ConfigDict(frozen=True)

    percentage: Decimal = Field(..., ge=0, le=100, description="Percent of the bill covered (0-100)")
    cap: Optional[Decimal] = Field(None, ge=0, description="Absolute ceiling on the covered amount")

    @field_validator("cap")
    @classmethod
    def round_cap(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return None if v is None else to_money(v)


class GovernmentSubsidy(BaseModel):
    """Means-tested government subsidy scheme."""

    model_config = ConfigDict(frozen=True)

    provider_type: Literal["government"] = "government"
    policy_number: str = ""
    provider_name: str = "Government Subsidy Scheme"
    status: InsuranceStatus = InsuranceStatus.ACTIVE
    income_bracket: str = Field(..., description="Bracket looked up in the tier table")
    tiers: Dict[str, SubsidyTier] = Field(..., description="Income bracket -> subsidy tier")


class PrivatePolicy(BaseModel):
    """Private insurer policy with co-pay, coverage limit and exclusions."""

    model_config = ConfigDict(frozen=True)

    provider_type: Literal["private"] = "private"
    policy_number: str = ""
    provider_name: str = ""
    status: InsuranceStatus = InsuranceStatus.ACTIVE
    coverage_limit: Decimal = Field(..., ge=0, description="Maximum the insurer pays for one bill")
    copay_percentage: Decimal = Field(..., ge=0, le=100, description="Patient share of eligible charges (0-100)")
    excluded_categories: Tuple[str, ...] = ()
    excluded_code_patterns: Tuple[str, ...] = Field(
        (),
        description="Regular expressions matched against code identifiers"
    )

    @field_validator("coverage_limit")
    @classmethod
    def round_limit(cls, v: Decimal) -> Decimal:
        return to_money(v)

    @field_validator("excluded_categories")
    @classmethod
    def normalize_categories(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(c.strip().upper() for c in v if c and c.strip())

    @field_validator("excluded_code_patterns")
    @classmethod
    def check_patterns(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        for pattern in v:
            try:
                re.compile(pattern, re.IGNORECASE)
            except re.error as e:
                raise ValueError(f"Invalid exclusion pattern {pattern!r}: {e}")
        return v


InsuranceProfile = Annotated[
    Union[GovernmentSubsidy, PrivatePolicy],
    Field(discriminator="provider_type")
]


class RuleApplication(BaseModel):
    """One step of an adjudication, in evaluation order."""

    model_config = ConfigDict(frozen=True)

    rule_name: str
    amount: Decimal = Field(..., description="Amount the rule affected")
    detail: str = ""


class AdjudicationResult(BaseModel):
    """Covered and patient-payable split of one bill."""

    model_config = ConfigDict(frozen=True)

    bill_id: str
    provider_type: str
    grand_total: Decimal
    covered_amount: Decimal
    patient_payable: Decimal
    rules_applied: Tuple[RuleApplication, ...] = ()

    @model_validator(mode="after")
    def check_reconciles(self) -> "AdjudicationResult":
        """Covered and payable must split the grand total exactly."""
        if self.covered_amount < 0 or self.patient_payable < 0:
            raise ValueError(f"Adjudication of {self.bill_id} has a negative amount")
        if self.covered_amount > self.grand_total:
            raise ValueError(
                f"Adjudication of {self.bill_id} covers {self.covered_amount} "
                f"of a {self.grand_total} bill"
            )
        if self.covered_amount + self.patient_payable != self.grand_total:
            raise ValueError(
                f"Adjudication of {self.bill_id}: covered {self.covered_amount} + payable "
                f"{self.patient_payable} != grand total {self.grand_total}"
            )
        return self

    def rule(self, rule_name: str) -> Optional[RuleApplication]:
        """Return the first applied rule with the given name, if any."""
        for application in self.rules_applied:
            if application.rule_name == rule_name:
                return application
        return None


class VisitStatus(str, Enum):
    ADMITTED = "ADMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    DISCHARGED = "DISCHARGED"
    CANCELLED = "CANCELLED"


class VisitCharge(BaseModel):
    """A code recorded against a visit (consultation, procedure, diagnosis...)."""

    code: str
    quantity: Decimal = Decimal("1")
    timestamp: datetime
    note: Optional[str] = None


class WardStay(BaseModel):
    """Occupancy of a ward class between two dates."""

    ward_code: str
    start: datetime
    end: datetime
    ward_name: Optional[str] = None


class Visit(BaseModel):
    """An episode of care as held by the hospital records."""

    visit_id: str
    patient_id: str
    status: VisitStatus = VisitStatus.ADMITTED
    admitted_at: Optional[datetime] = None
    discharged_at: Optional[datetime] = None
    charges: List[VisitCharge] = Field(default_factory=list)
    ward_stays: List[WardStay] = Field(default_factory=list)

    @property
    def closed(self) -> bool:
        """Discharged and cancelled visits accept no further charges."""
        return self.status in (VisitStatus.DISCHARGED, VisitStatus.CANCELLED)


class Patient(BaseModel):
    patient_id: str
    name: str
    insurance_profile: Optional[InsuranceProfile] = None
