from dataclasses import dataclass
from typing import List

from loguru import logger

from .errors import CallNotFoundError
from .models import Call, CallOutcome, PatientStatus, PatientWithOutcome
from .store import RecordStore


def derive_status(outcome: CallOutcome) -> PatientStatus:
    """The one rule that maps a checklist to a patient status."""
    if outcome.needs_followup:
        return PatientStatus.NEEDS_FOLLOWUP
    return PatientStatus.CALLED


@dataclass
class OutcomeResult:
    status: PatientStatus
    call: Call


class OutcomeReconciler:
    """Keeps call outcomes and patient statuses in step.

    Every status change that follows from a call goes through here so the
    follow-up flag on the call and the patient's status cannot disagree.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def submit_outcome(self, patient_id: int, outcome: CallOutcome) -> OutcomeResult:
        with self.store.lock:
            # Raises PatientNotFoundError before anything is written
            self.store.get_patient(patient_id)
            call = self.store.attach_outcome(patient_id, outcome, persist=False)
            if call is None:
                raise CallNotFoundError(patient_id)
            status = derive_status(outcome)
            self.store.set_patient_status(patient_id, status, persist=False)
            # Both records change in memory before the one write
            self.store.save()
        logger.info(f"Call {call.id} for patient {patient_id} closed after {call.duration_seconds}s, status -> {status.value}")
        return OutcomeResult(status=status, call=call)

    def resolve_followup(self, patient_id: int):
        self.store.set_patient_status(patient_id, PatientStatus.CALLED)
        logger.info(f"Follow-up resolved for patient {patient_id}")

    def followup_queue(self) -> List[PatientWithOutcome]:
        with self.store.lock:
            followups = []
            for patient in self.store.list_patients(status=PatientStatus.NEEDS_FOLLOWUP):
                last_call = self.store.last_call(patient.id)
                followups.append(
                    PatientWithOutcome(
                        **patient.model_dump(),
                        outcome=last_call.outcome if last_call else None,
                        call_ended_at=last_call.ended_at if last_call else None,
                    )
                )
            return followups
