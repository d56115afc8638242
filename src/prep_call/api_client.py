from typing import Any, List, Optional

import aiohttp
from loguru import logger

from .config.settings import get_settings
from .errors import UpstreamServiceError
from .models import Call, CallOutcome, LiveKitToken, OutcomeResponse, Patient, PatientWithOutcome, Stats


class PrepCallClient:
    """Async client for the prep-call HTTP API."""

    def __init__(self, aiohttp_session: aiohttp.ClientSession, base_url: Optional[str] = None):
        self.aiohttp_session = aiohttp_session
        self.base_url = (base_url or get_settings().API_URL).rstrip("/")

    async def _request(self, method: str, endpoint: str, json: Any = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        async with self.aiohttp_session.request(method, url, json=json) as resp:
            if resp.status >= 400:
                try:
                    body = await resp.json()
                    message = body.get("error") if isinstance(body, dict) else None
                except (aiohttp.ContentTypeError, ValueError):
                    message = None
                message = message or f"HTTP {resp.status}"
                logger.error(f"{method} {endpoint} failed: {message}")
                raise UpstreamServiceError(message, status_code=resp.status)
            return await resp.json()

    # Patients
    async def get_patients_tomorrow(self) -> List[Patient]:
        data = await self._request("GET", "/patients/tomorrow")
        return [Patient.model_validate(item) for item in data]

    async def get_patient(self, patient_id: int) -> Patient:
        return Patient.model_validate(await self._request("GET", f"/patients/{patient_id}"))

    # Calls
    async def create_call(self, patient_id: int) -> Call:
        return Call.model_validate(await self._request("POST", "/calls", json={"patientId": patient_id}))

    async def submit_outcome(self, patient_id: int, outcome: CallOutcome) -> OutcomeResponse:
        data = await self._request("POST", f"/calls/{patient_id}/outcome", json=outcome.model_dump(by_alias=True))
        return OutcomeResponse.model_validate(data)

    # LiveKit token
    async def get_livekit_token(self, patient_name: Optional[str] = None) -> LiveKitToken:
        data = await self._request("POST", "/livekit/token", json={"patientName": patient_name})
        return LiveKitToken.model_validate(data)

    # Follow-ups
    async def get_followups(self) -> List[PatientWithOutcome]:
        data = await self._request("GET", "/followups")
        return [PatientWithOutcome.model_validate(item) for item in data]

    async def resolve_followup(self, patient_id: int) -> bool:
        data = await self._request("PUT", f"/followups/{patient_id}/resolve")
        return bool(data.get("success"))

    # Stats
    async def get_stats(self) -> Stats:
        return Stats.model_validate(await self._request("GET", "/stats"))

    # Reset demo data
    async def reset_data(self) -> bool:
        data = await self._request("POST", "/reset")
        return bool(data.get("success"))
