"""
Clinical and hospital service code catalog.

Holds diagnostic, procedure and service codes with their unit prices. The
registry is loaded once and is read-only afterwards.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional

from .exceptions import DuplicateCodeError, UnknownCodeError
from .money import to_decimal

logger = logging.getLogger(__name__)


class CodeType(str, Enum):
    """Kind of billable code."""

    DIAGNOSTIC = "DIAGNOSTIC"
    PROCEDURE = "PROCEDURE"
    SERVICE = "SERVICE"


# Category used when a catalog entry does not name one
DEFAULT_CATEGORIES = {
    CodeType.DIAGNOSTIC: "DIAGNOSIS",
    CodeType.PROCEDURE: "PROCEDURE",
    CodeType.SERVICE: "SERVICE",
}


@dataclass(frozen=True)
class Code:
    """A billable code with its description and unit price."""

    code_id: str
    description: str
    unit_price: Decimal
    code_type: CodeType
    category: str = ""

    def __post_init__(self):
        code_id = (self.code_id or "").strip().upper()
        if not code_id:
            raise ValueError("Code identifier cannot be empty")
        price = to_decimal(self.unit_price)
        if not price.is_finite() or price < 0:
            raise ValueError(f"Unit price for {code_id} cannot be negative: {price}")
        code_type = self.code_type
        if isinstance(code_type, str) and not isinstance(code_type, CodeType):
            code_type = code_type.strip().upper()
        code_type = CodeType(code_type)
        category = (self.category or DEFAULT_CATEGORIES[code_type]).strip().upper()

        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "code_id", code_id)
        object.__setattr__(self, "unit_price", price)
        object.__setattr__(self, "code_type", code_type)
        object.__setattr__(self, "category", category)

    @classmethod
    def from_dict(cls, data: dict) -> "Code":
        """Build a Code from a catalog entry (``code`` or ``code_id`` key)."""
        return cls(
            code_id=data.get("code_id", data.get("code", "")),
            description=data.get("description", ""),
            unit_price=data["unit_price"],
            code_type=data.get("code_type", CodeType.SERVICE.value),
            category=data.get("category") or "",
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code_id,
            "description": self.description,
            "unit_price": str(self.unit_price),
            "code_type": self.code_type.value,
            "category": self.category,
        }


class CodeRegistry:
    """
    Read-only lookup from code identifier to Code.

    Example:
        >>> registry = create_default_code_registry()
        >>> registry.lookup("WARD-ICU").unit_price
        Decimal('2000.00')
    """

    def __init__(self, codes: Iterable[Code] = ()):
        """
        Initialize the registry.

        Args:
            codes: Codes to load. Identifiers must be unique.

        Raises:
            DuplicateCodeError: If two codes share an identifier
        """
        table: Dict[str, Code] = {}
        for code in codes:
            if code.code_id in table:
                raise DuplicateCodeError(code.code_id)
            table[code.code_id] = code
        self._codes = MappingProxyType(table)
        logger.info(f"Code registry loaded with {len(table)} codes")

    def lookup(self, code_id: str) -> Code:
        """
        Resolve a code identifier.

        Args:
            code_id: Code identifier (case-insensitive)

        Returns:
            The matching Code

        Raises:
            UnknownCodeError: If the code is not in the registry
        """
        code = self.get_code(code_id)
        if code is None:
            raise UnknownCodeError(code_id)
        return code

    def get_code(self, code_id: str) -> Optional[Code]:
        """Return the Code for an identifier, or None if absent."""
        if not isinstance(code_id, str) or not code_id.strip():
            return None
        return self._codes.get(code_id.strip().upper())

    def codes_by_type(self, code_type: CodeType) -> List[Code]:
        code_type = CodeType(code_type)
        return [code for code in self._codes.values() if code.code_type == code_type]

    def __contains__(self, code_id) -> bool:
        return isinstance(code_id, str) and self.get_code(code_id) is not None

    def __len__(self) -> int:
        return len(self._codes)

    def __iter__(self) -> Iterator[Code]:
        return iter(self._codes.values())

    @classmethod
    def from_source(cls, source) -> "CodeRegistry":
        """Load a registry from any catalog source exposing ``load_codes()``."""
        return cls(source.load_codes())

    @classmethod
    def from_directory(cls, directory: Path) -> "CodeRegistry":
        """
        Load a registry from ``codes.json`` in a data directory.

        Args:
            directory: Path to directory containing codes.json

        Raises:
            FileNotFoundError: If codes.json does not exist
        """
        return cls(load_codes_file(Path(directory) / "codes.json"))


def load_codes_file(path: Path) -> List[Code]:
    """Read a JSON list of catalog entries into Codes."""
    with open(path, "r") as f:
        entries = json.load(f)
    return [Code.from_dict(entry) for entry in entries]


def create_default_code_registry() -> CodeRegistry:
    """
    Create a registry with a small sample catalog.

    Ward day rates follow the hospital's ward class price list; diagnostic
    and procedure codes are a handful of common ICD-10-CM / ICD-10-PCS codes.

    Returns:
        CodeRegistry with sample data loaded
    """
    D, P, S = CodeType.DIAGNOSTIC, CodeType.PROCEDURE, CodeType.SERVICE
    sample_codes = [
        # Ward day rates
        Code("WARD-LAB-A", "Labour ward, class A (per day)", Decimal("1500.00"), S, "WARD"),
        Code("WARD-LAB-B1", "Labour ward, class B1 (per day)", Decimal("1000.00"), S, "WARD"),
        Code("WARD-LAB-B2", "Labour ward, class B2 (per day)", Decimal("500.00"), S, "WARD"),
        Code("WARD-LAB-C", "Labour ward, class C (per day)", Decimal("250.00"), S, "WARD"),
        Code("WARD-ICU", "Intensive care unit (per day)", Decimal("2000.00"), S, "WARD"),
        Code("WARD-DS-SEATER", "Day surgery, seater (per day)", Decimal("300.00"), S, "WARD"),
        Code("WARD-DS-COHORT", "Day surgery, cohort (per day)", Decimal("250.00"), S, "WARD"),
        Code("WARD-DS-SINGLE", "Day surgery, single room (per day)", Decimal("200.00"), S, "WARD"),
        Code("WARD-GEN-A", "General ward, class A (per day)", Decimal("500.00"), S, "WARD"),
        Code("WARD-GEN-B1", "General ward, class B1 (per day)", Decimal("250.00"), S, "WARD"),
        Code("WARD-GEN-B2", "General ward, class B2 (per day)", Decimal("200.00"), S, "WARD"),
        Code("WARD-GEN-C", "General ward, class C (per day)", Decimal("150.00"), S, "WARD"),

        # Consultations
        Code("CONS-GP", "General practitioner consultation", Decimal("40.00"), S, "CONSULTATION"),
        Code("CONS-SPEC", "Specialist consultation", Decimal("120.00"), S, "CONSULTATION"),
        Code("CONS-DENTAL", "Dental consultation", Decimal("80.00"), S, "DENTAL"),
        Code("CONS-OBGYN", "Obstetric consultation", Decimal("150.00"), S, "MATERNITY"),

        # Diagnostics (ICD-10-CM)
        Code("I10", "Essential (primary) hypertension", Decimal("45.00"), D),
        Code("E11.9", "Type 2 diabetes mellitus without complications", Decimal("60.00"), D),
        Code("J18.9", "Pneumonia, unspecified organism", Decimal("85.00"), D),
        Code("K35.80", "Unspecified acute appendicitis", Decimal("95.00"), D),
        Code("O80", "Encounter for full-term uncomplicated delivery", Decimal("120.00"), D, "MATERNITY"),

        # Procedures (ICD-10-PCS)
        Code("0DTJ4ZZ", "Resection of appendix, percutaneous endoscopic", Decimal("4200.00"), P),
        Code("10E0XZZ", "Delivery of products of conception, external", Decimal("2500.00"), P, "MATERNITY"),
        Code("0CDWXZ1", "Extraction of lower tooth, external", Decimal("350.00"), P, "DENTAL"),
        Code("BW03ZZZ", "Plain radiography of chest", Decimal("110.00"), P, "IMAGING"),

        # Medication
        Code("MED-AMOX-500", "Amoxicillin 500mg capsule", Decimal("0.85"), S, "MEDICATION"),
        Code("MED-PARA-500", "Paracetamol 500mg tablet", Decimal("0.15"), S, "MEDICATION"),
    ]
    return CodeRegistry(sample_codes)
