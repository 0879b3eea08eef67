"""
SafeMed - EMR API Gateway
Async client for the remote EMR/AI API with an in-memory fallback

Operations:
- list_patients / get_patient
- list_encounters / list_medications
- create_patient: AI patient creation from a free-text prompt
- create_encounter: AI encounter creation from a free-text prompt

Network failures, timeouts and remote 5xx responses are served from the
MockEMRStore instead. Remote 4xx responses raise EMRClientError.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from app.config import Settings
from app.services.errors import EMRClientError, EMRUnavailableError
from app.services.mock_store import MockEMRStore

logger = logging.getLogger(__name__)


class EMRGateway:
    """
    Gateway to the remote EMR API

    Usage (async context manager):
        async with EMRGateway(settings, store) as gateway:
            body = await gateway.list_patients()

    Usage (manual lifecycle, as the application does):
        gateway = EMRGateway(settings, store)
        ...
        await gateway.close()
    """

    def __init__(
        self,
        config: Settings,
        store: MockEMRStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.mock_mode = config.mock_api

        self.client = httpx.AsyncClient(
            base_url=config.emr_base_url,
            headers=config.get_auth_header(),
            timeout=config.emr_timeout,
            transport=transport,
        )

        if self.mock_mode:
            logger.info("EMR gateway in mock mode: remote API will not be called")
        else:
            logger.info(f"EMR gateway targeting {config.emr_base_url}")
            if not config.emr_api_token:
                logger.warning("API token not configured. Remote calls will likely be rejected.")

    async def __aenter__(self) -> "EMRGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict):
            for key in ("detail", "error", "message"):
                if body.get(key):
                    return str(body[key])
        return str(body)

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """Perform one remote call and decode the JSON body"""
        try:
            response = await self.client.request(method, path, json=json)
        except httpx.TransportError as e:
            raise EMRUnavailableError(f"{type(e).__name__}: {e}")

        if response.status_code >= 500:
            raise EMRUnavailableError(
                f"Remote returned {response.status_code}", status_code=response.status_code
            )
        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error(f"API Error {response.status_code} on {method} {path}: {message}")
            raise EMRClientError(response.status_code, message)

        try:
            return response.json()
        except ValueError:
            raise EMRUnavailableError(f"Remote returned a non-JSON body for {method} {path}")

    async def _call(
        self,
        operation: str,
        remote: Callable[[], Awaitable[Any]],
        fallback: Callable[[], Any],
    ) -> Any:
        """Run the remote call, or the mock store when in mock mode or the remote is down"""
        if self.mock_mode:
            return fallback()

        try:
            return await remote()
        except EMRUnavailableError as e:
            logger.warning(f"{operation} failed ({e.message}); falling back to mock store")
            return fallback()

    @staticmethod
    def results(body: Any) -> List[Dict[str, Any]]:
        """Unwrap a collection response; the remote has returned both bare lists and {results: [...]}"""
        if isinstance(body, list):
            return body
        if isinstance(body, dict):
            return body.get("results") or []
        return []

    # =========================================================================
    # Patients
    # =========================================================================

    def _patient_path(self, patient_id: int, suffix: str = "") -> str:
        return f"{self.config.emr_patients_path}/{patient_id}{suffix}"

    async def list_patients(self) -> Any:
        return await self._call(
            "list_patients",
            lambda: self._request("GET", self.config.emr_patients_path),
            self.store.list_patients,
        )

    async def get_patient(self, patient_id: int) -> Any:
        return await self._call(
            "get_patient",
            lambda: self._request("GET", self._patient_path(patient_id)),
            lambda: self.store.get_patient(patient_id),
        )

    async def list_encounters(self, patient_id: int) -> Any:
        return await self._call(
            "list_encounters",
            lambda: self._request("GET", self._patient_path(patient_id, "/encounters")),
            lambda: self.store.list_encounters(patient_id),
        )

    async def list_medications(self, patient_id: int) -> Any:
        return await self._call(
            "list_medications",
            lambda: self._request("GET", self._patient_path(patient_id, "/medications")),
            lambda: self.store.list_medications(patient_id),
        )

    async def create_patient(self, prompt: str) -> Any:
        """Create a patient from free text; the body carries the new patient's id"""
        return await self._call(
            "create_patient",
            lambda: self._request("POST", self.config.emr_ai_patient_path, json={"prompt": prompt}),
            lambda: self.store.create_patient(prompt),
        )

    async def create_encounter(self, prompt: str, patient_id: int) -> Any:
        """Create an encounter (and its medications) from free text"""
        return await self._call(
            "create_encounter",
            lambda: self._request(
                "POST",
                self.config.emr_ai_encounter_path,
                json={"prompt": prompt, "patient": patient_id},
            ),
            lambda: self.store.create_encounter(prompt, patient_id),
        )
