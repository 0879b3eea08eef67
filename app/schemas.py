"""
SafeMed - Clinical Data Schemas
Pydantic models for patients, encounters, medications and safety alerts
"""

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum


# ============================================================================
# Enumerations
# ============================================================================

class AlertCategory(str, Enum):
    """Safety alert categories"""
    ALLERGY_RISK = "allergy risk"
    DRUG_INTERACTION = "drug interaction"
    PHARMACOVIGILANCE = "pharmacovigilance warning"


class AlertSeverity(str, Enum):
    """Safety alert severity levels"""
    HIGH = "High"
    MEDIUM = "Medium"


class ParseOutcome(str, Enum):
    """Result of parsing a free-text prompt"""
    PARSED = "parsed"
    UNPARSED = "unparsed"


# ============================================================================
# Core Clinical Models
# ============================================================================

class Patient(BaseModel):
    """Patient record as returned by the EMR or the mock store"""
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": 1,
                "full_name": "Jane Doe",
                "allergies": ["penicillin"]
            }
        }
    )

    id: int
    full_name: str = Field(
        ...,
        validation_alias=AliasChoices("full_name", "name", "display_name")
    )
    allergies: List[str] = Field(default_factory=list)

    @field_validator("allergies", mode="before")
    @classmethod
    def normalize_allergies(cls, v: Any) -> List[str]:
        """Remote payloads may carry allergies as strings or as {name: ...} objects"""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        allergies = []
        for item in v:
            if isinstance(item, dict):
                item = item.get("name") or item.get("substance") or ""
            item = str(item).strip()
            if item:
                allergies.append(item)
        return allergies


class Encounter(BaseModel):
    """Clinical encounter created from a free-text prompt"""
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    patient_id: int = Field(..., validation_alias=AliasChoices("patient_id", "patient"))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    summary: str = ""
    diagnosis: Optional[str] = None


class Medication(BaseModel):
    """Medication prescribed to a patient"""
    model_config = ConfigDict(extra="ignore")

    name: str
    patient_id: int = Field(..., validation_alias=AliasChoices("patient_id", "patient"))
    dose: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Alert(BaseModel):
    """Medication safety alert"""
    category: AlertCategory
    message: str
    severity: AlertSeverity
    rule_name: str
    medications: List[str] = Field(default_factory=list)


# ============================================================================
# Prompt Parsing Models
# ============================================================================

class ParsedMedication(BaseModel):
    """Medication recognised in an encounter prompt"""
    name: str
    dose: Optional[str] = None


class PatientPromptResult(BaseModel):
    """Structured result of parsing a patient-creation prompt"""
    outcome: ParseOutcome
    full_name: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)
    reason: Optional[str] = None

    @property
    def parsed(self) -> bool:
        return self.outcome == ParseOutcome.PARSED


class EncounterPromptResult(BaseModel):
    """Structured result of parsing an encounter prompt"""
    outcome: ParseOutcome
    summary: str
    diagnosis: Optional[str] = None
    medications: List[ParsedMedication] = Field(default_factory=list)
    reason: Optional[str] = None

    @property
    def parsed(self) -> bool:
        return self.outcome == ParseOutcome.PARSED


# ============================================================================
# API Request / Response Models
# ============================================================================

class CreatePatientRequest(BaseModel):
    """Free-text patient creation request"""
    prompt: str = Field(..., min_length=1, max_length=4000)

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt must not be blank")
        return v.strip()


class CreateEncounterRequest(CreatePatientRequest):
    """Free-text encounter creation request for an existing patient"""
    model_config = ConfigDict(populate_by_name=True)

    patient_id: int = Field(..., ge=1, validation_alias=AliasChoices("patientId", "patient_id"))


class CreatePatientResponse(BaseModel):
    """Patient creation acknowledgement"""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    patient_id: int = Field(..., alias="patientId")


class PatientListResponse(BaseModel):
    """Patients shown on the landing page"""
    patients: List[Patient]
    mock: bool


class PatientDashboard(BaseModel):
    """Patient detail with computed safety alerts"""
    patient: Patient
    encounters: List[Encounter] = Field(default_factory=list)
    medications: List[Medication] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)


class CreateEncounterResponse(PatientDashboard):
    """Encounter creation result with the refreshed dashboard"""
    success: bool = True
    encounter: Optional[Encounter] = None


class HealthResponse(BaseModel):
    """Liveness probe payload"""
    status: str
    mode: str
    timestamp: datetime
    version: str


class WebhookAck(BaseModel):
    """Webhook receipt acknowledgement"""
    received: bool = True
