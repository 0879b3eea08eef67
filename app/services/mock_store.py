"""
SafeMed - In-Memory EMR Store
Serves the EMR's patient/encounter/medication API from process memory
"""

import logging
import itertools
from typing import Dict, List, Any
from datetime import datetime

from app.modules.prompt_parser import parse_patient_prompt, parse_encounter_prompt
from app.services.errors import EMRClientError, PromptParseError

logger = logging.getLogger(__name__)


DEMO_PATIENTS = [
    {"full_name": "Jane Doe", "allergies": ["penicillin"]},
]


# =============================================================================
# Mock EMR Store
# =============================================================================

class MockEMRStore:
    """
    In-memory stand-in for the remote EMR

    Responses mirror the remote API's shapes: collections are wrapped as
    {"results": [...]}, single records are plain dicts. Not synchronized;
    one instance is owned by the application and shared by all requests.
    """

    def __init__(self, seed_demo_data: bool = True):
        self.patients: Dict[int, Dict[str, Any]] = {}
        self.encounters: List[Dict[str, Any]] = []
        self.medications: List[Dict[str, Any]] = []

        self._patient_ids = itertools.count(1)
        self._encounter_ids = itertools.count(1)

        if seed_demo_data:
            for patient in DEMO_PATIENTS:
                self.add_patient(patient["full_name"], patient["allergies"])
            logger.info(f"Mock store seeded with {len(self.patients)} demo patients")

    # =========================================================================
    # Writes
    # =========================================================================

    def add_patient(self, full_name: str, allergies: List[str]) -> Dict[str, Any]:
        """Insert a patient with the next id"""
        patient_id = next(self._patient_ids)
        patient = {
            "id": patient_id,
            "full_name": full_name,
            "allergies": list(allergies),
            "created_at": datetime.utcnow().isoformat(),
        }
        self.patients[patient_id] = patient
        return patient

    def create_patient(self, prompt: str) -> Dict[str, Any]:
        """
        Create a patient from a free-text prompt

        Raises:
            PromptParseError: if no patient name could be found in the prompt
        """
        result = parse_patient_prompt(prompt)
        if not result.parsed:
            raise PromptParseError(result.reason or "Could not parse patient prompt")

        patient = self.add_patient(result.full_name, result.allergies)
        logger.info(f"Mock patient {patient['id']} created with {len(result.allergies)} allergies")
        return dict(patient)

    def create_encounter(self, prompt: str, patient_id: int) -> Dict[str, Any]:
        """
        Record an encounter and any medications named in the prompt

        Raises:
            EMRClientError: if the patient does not exist
        """
        self.get_patient(patient_id)

        result = parse_encounter_prompt(prompt)
        now = datetime.utcnow().isoformat()

        encounter = {
            "id": next(self._encounter_ids),
            "patient": patient_id,
            "created_at": now,
            "summary": result.summary,
            "diagnosis": result.diagnosis,
        }
        self.encounters.append(encounter)

        for med in result.medications:
            self.medications.append({
                "name": med.name,
                "patient_id": patient_id,
                "dose": med.dose,
                "created_at": now,
            })

        logger.info(
            f"Mock encounter {encounter['id']} for patient {patient_id}: "
            f"{len(result.medications)} medications, outcome={result.outcome.value}"
        )
        return dict(encounter, medications=[m.model_dump() for m in result.medications])

    # =========================================================================
    # Reads
    # =========================================================================

    def list_patients(self) -> Dict[str, Any]:
        return {"results": [dict(p) for p in self.patients.values()]}

    def get_patient(self, patient_id: int) -> Dict[str, Any]:
        patient = self.patients.get(patient_id)
        if patient is None:
            raise EMRClientError(404, f"Patient {patient_id} not found")
        return dict(patient)

    def list_encounters(self, patient_id: int) -> Dict[str, Any]:
        return {"results": [dict(e) for e in self.encounters if e["patient"] == patient_id]}

    def list_medications(self, patient_id: int) -> Dict[str, Any]:
        return {"results": [dict(m) for m in self.medications if m["patient_id"] == patient_id]}
