"""
SafeMed - Patient & Encounter Routes
Landing list, patient dashboard and free-text creation endpoints
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from app.dependencies import get_gateway
from app.modules.alert_rules import evaluate_alerts
from app.schemas import (
    Patient, Encounter, Medication,
    CreatePatientRequest, CreatePatientResponse,
    CreateEncounterRequest, CreateEncounterResponse,
    PatientDashboard, PatientListResponse,
)
from app.services.emr_gateway import EMRGateway
from app.services.errors import EMRGatewayError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["patients"])


def _http_error(e: EMRGatewayError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def _bad_upstream(what: str, e: Exception) -> HTTPException:
    logger.error(f"Unexpected {what} payload from EMR: {e}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Unexpected {what} payload from EMR"
    )


def _owned(record: Any, patient_id: int) -> Any:
    # Sub-resource records usually leave the owner implicit in the URL
    if isinstance(record, dict):
        return {"patient_id": patient_id, **record}
    return record


async def build_dashboard(gateway: EMRGateway, patient_id: int) -> PatientDashboard:
    """Fetch patient, encounters and medications concurrently, then evaluate alerts"""
    bodies = await asyncio.gather(
        gateway.get_patient(patient_id),
        gateway.list_encounters(patient_id),
        gateway.list_medications(patient_id),
        return_exceptions=True,
    )
    for body in bodies:
        if isinstance(body, BaseException):
            raise body
    patient_body, encounters_body, medications_body = bodies

    try:
        patient = Patient.model_validate(patient_body)
        encounters = [
            Encounter.model_validate(_owned(e, patient_id)) for e in gateway.results(encounters_body)
        ]
        medications = [
            Medication.model_validate(_owned(m, patient_id)) for m in gateway.results(medications_body)
        ]
    except ValidationError as e:
        raise _bad_upstream("dashboard", e)

    alerts = evaluate_alerts(patient.allergies, medications, gateway.config)
    logger.info(f"Dashboard for patient {patient_id}: {len(medications)} medications, {len(alerts)} alerts")

    return PatientDashboard(
        patient=patient,
        encounters=encounters,
        medications=medications,
        alerts=alerts,
    )


@router.get("/", response_model=PatientListResponse)
async def list_patients(gateway: EMRGateway = Depends(get_gateway)):
    """List patients"""
    try:
        body = await gateway.list_patients()
    except EMRGatewayError as e:
        raise _http_error(e)

    try:
        patients = [Patient.model_validate(p) for p in gateway.results(body)]
    except ValidationError as e:
        raise _bad_upstream("patient list", e)

    return PatientListResponse(patients=patients, mock=gateway.mock_mode)


@router.get("/dashboard/{patient_id}", response_model=PatientDashboard)
async def patient_dashboard(patient_id: int, gateway: EMRGateway = Depends(get_gateway)):
    """Patient detail plus computed medication safety alerts"""
    try:
        return await build_dashboard(gateway, patient_id)
    except EMRGatewayError as e:
        raise _http_error(e)


@router.post("/create-patient", response_model=CreatePatientResponse)
async def create_patient(request: CreatePatientRequest, gateway: EMRGateway = Depends(get_gateway)):
    """Create a patient from a free-text prompt"""
    try:
        body: Any = await gateway.create_patient(request.prompt)
    except EMRGatewayError as e:
        raise _http_error(e)

    patient_id = body.get("id") if isinstance(body, dict) else None
    if patient_id is None:
        raise _bad_upstream("patient creation", ValueError(f"no id in {body!r}"))

    logger.info(f"Created patient {patient_id}")
    return CreatePatientResponse(patient_id=patient_id)


@router.post("/create-encounter", response_model=CreateEncounterResponse)
async def create_encounter(request: CreateEncounterRequest, gateway: EMRGateway = Depends(get_gateway)):
    """Create an encounter from a free-text prompt and return the refreshed dashboard"""
    try:
        body: Any = await gateway.create_encounter(request.prompt, request.patient_id)
        dashboard = await build_dashboard(gateway, request.patient_id)
    except EMRGatewayError as e:
        raise _http_error(e)

    encounter = None
    if isinstance(body, dict):
        try:
            encounter = Encounter.model_validate({"patient": request.patient_id, **body})
        except ValidationError as e:
            logger.warning(f"Encounter response not understood, omitting it: {e}")

    return CreateEncounterResponse(
        encounter=encounter,
        patient=dashboard.patient,
        encounters=dashboard.encounters,
        medications=dashboard.medications,
        alerts=dashboard.alerts,
    )
