"""
Contracts with the hospital's record-keeping collaborators, plus simple
in-memory and JSON-file implementations of them.

The engine only ever talks to these protocols: a catalog source for codes,
a record directory for patients and visits, and an append-only sink for
bills and claims.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from .code_registry import Code, load_codes_file
from .exceptions import UnknownRecordError
from .models import Bill, Patient, Visit

logger = logging.getLogger(__name__)


class CatalogSource(Protocol):
    def load_codes(self) -> Sequence[Code]:
        ...


class RecordDirectory(Protocol):
    def get_patient(self, patient_id: str) -> Patient:
        ...

    def get_visit(self, visit_id: str) -> Visit:
        ...


class PersistenceSink(Protocol):
    def save_bill(self, bill: Bill) -> None:
        ...

    def save_claim(self, record) -> None:
        ...


class JsonCatalogSource:
    """Reads codes.json from a data directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def load_codes(self) -> List[Code]:
        codes = load_codes_file(self.directory / "codes.json")
        logger.info(f"Loaded {len(codes)} codes from {self.directory}")
        return codes


class InMemoryRecordDirectory:
    """Patients and visits held in dictionaries."""

    def __init__(self, patients: Iterable[Patient] = (), visits: Iterable[Visit] = ()):
        self.patients: Dict[str, Patient] = {}
        self.visits: Dict[str, Visit] = {}
        for patient in patients:
            self.add_patient(patient)
        for visit in visits:
            self.add_visit(visit)

    def add_patient(self, patient: Patient) -> None:
        self.patients[patient.patient_id] = patient

    def add_visit(self, visit: Visit) -> None:
        self.visits[visit.visit_id] = visit

    def get_patient(self, patient_id: str) -> Patient:
        """
        Raises:
            UnknownRecordError: If no such patient exists
        """
        patient = self.patients.get(patient_id)
        if patient is None:
            raise UnknownRecordError("patient", patient_id)
        return patient

    def get_visit(self, visit_id: str) -> Visit:
        """
        Raises:
            UnknownRecordError: If no such visit exists
        """
        visit = self.visits.get(visit_id)
        if visit is None:
            raise UnknownRecordError("visit", visit_id)
        return visit

    def visits_for_patient(self, patient_id: str) -> List[Visit]:
        return [visit for visit in self.visits.values() if visit.patient_id == patient_id]


class JsonRecordDirectory(InMemoryRecordDirectory):
    """
    Record directory loaded from JSON files.

    Expected files:
    - patients.json: list of patient objects (with optional insurance_profile)
    - visits.json: list of visit objects (charges and ward_stays)
    """

    def __init__(self, directory: Path):
        super().__init__()
        self.directory = Path(directory)
        self.load_from_directory(self.directory)

    def load_from_directory(self, directory: Path) -> None:
        """
        Load patient and visit records; missing files are skipped.

        Args:
            directory: Path to directory containing the data files
        """
        directory = Path(directory)

        patients_file = directory / "patients.json"
        if patients_file.exists():
            with open(patients_file, 'r') as f:
                for patient_dict in json.load(f):
                    self.add_patient(Patient.model_validate(patient_dict))

        visits_file = directory / "visits.json"
        if visits_file.exists():
            with open(visits_file, 'r') as f:
                for visit_dict in json.load(f):
                    self.add_visit(Visit.model_validate(visit_dict))

        logger.info(f"Loaded {len(self.patients)} patients and {len(self.visits)} visits from {directory}")


class InMemorySink:
    """Append-only store of saved bills and claim snapshots."""

    def __init__(self):
        self.bills: List[Bill] = []
        self.claims: List = []

    def save_bill(self, bill: Bill) -> None:
        self.bills.append(bill)

    def save_claim(self, record) -> None:
        self.claims.append(record)

    def latest_claim(self, claim_id: str) -> Optional[object]:
        """Most recent snapshot saved for a claim."""
        for record in reversed(self.claims):
            if record.claim_id == claim_id:
                return record
        return None
