from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PatientStatus(str, Enum):
    PENDING = "pending"
    CALLED = "called"
    NEEDS_FOLLOWUP = "needs_followup"


class Patient(BaseModel):
    id: int
    name: str
    phone: str
    dob: str
    procedure_date: str
    procedure_time: str
    status: PatientStatus = PatientStatus.PENDING


class CallOutcome(BaseModel):
    """Verification checklist filled in during (or right after) a prep call.

    Serialized with camelCase keys, which is what the voice agent, the HTTP
    API and the data file all use.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)

    identity_verified: bool = False
    has_supplies: bool = False
    understands_diet: bool = False
    knows_timeline: bool = False
    has_transportation: bool = False
    completed_all_steps: bool = False
    needs_followup: bool = False
    notes: str = ""


class Call(BaseModel):
    id: int
    patient_id: int
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    duration_seconds: Optional[int] = None
    outcome: Optional[CallOutcome] = None


class PatientWithOutcome(Patient):
    model_config = ConfigDict(populate_by_name=True)

    outcome: Optional[CallOutcome] = None
    call_ended_at: Optional[str] = Field(default=None, alias="callEndedAt")


class Stats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_patients: int = 0
    pending: int = 0
    called: int = 0
    needs_followup: int = 0


class StoreSnapshot(BaseModel):
    patients: List[Patient] = []
    calls: List[Call] = []


# Pydantic models for the HTTP API request/response bodies
class CreateCallRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: Optional[int] = Field(default=None, alias="patientId")


class TokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_name: Optional[str] = Field(default=None, alias="patientName")


class LiveKitToken(BaseModel):
    livekit_url: str
    token: str
    room_name: Optional[str] = None
    participant_identity: Optional[str] = None
    expires_in: Optional[int] = None


class OutcomeResponse(BaseModel):
    success: bool = True
    status: PatientStatus
    call: Call


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
