import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from .api_client import PrepCallClient
from .models import Call, CallOutcome, OutcomeResponse, Patient
from .prep_instructions import COLONOSCOPY_PREP_INSTRUCTIONS
from .session.checklist import UPDATE_STEPS_ACTION, merge_checklist_update
from .session.controller import CallSessionController


def patient_context(patient: Patient, prep_instructions: str = COLONOSCOPY_PREP_INSTRUCTIONS) -> Dict[str, Any]:
    return {
        "patientName": patient.name,
        "dateOfBirth": patient.dob,
        "procedureDate": patient.procedure_date,
        "procedureTime": patient.procedure_time,
        "prepInstructions": prep_instructions,
    }


class CallWorkflow:
    """One staff-launched prep call for one patient.

    Creates the call record, connects the voice agent, keeps the checklist
    draft in sync with what the agent reports, and submits the final outcome.
    """

    def __init__(self, patient: Patient, client: PrepCallClient, controller: CallSessionController):
        self.patient = patient
        self.client = client
        self.controller = controller
        self.draft = CallOutcome()
        self.call: Optional[Call] = None
        self._submit_lock = asyncio.Lock()
        controller.set_action_handler(self.on_agent_action)

    def on_agent_action(self, action: str, payload: Dict[str, Any]):
        if action == UPDATE_STEPS_ACTION:
            self.draft = merge_checklist_update(self.draft, payload)
            logger.debug(f"Checklist for patient {self.patient.id} updated by agent: {self.draft.model_dump(by_alias=True)}")
        else:
            logger.debug(f"Ignoring agent action '{action}'")

    async def start(self):
        """Create the call record, then connect (also used to reconnect)."""
        self.call = await self.client.create_call(self.patient.id)
        logger.info(f"Call {self.call.id} created for patient {self.patient.id}")
        await self.controller.connect(self.patient.name, context=patient_context(self.patient))

    def set_field(self, name: str, value: Any):
        """Apply a manual checklist edit (snake_case field name)."""
        current = getattr(self.draft, name)
        if type(value) is not type(current):
            raise TypeError(f"{name} expects {type(current).__name__}, got {type(value).__name__}")
        self.draft = self.draft.model_copy(update={name: value})

    async def end(self):
        await self.controller.disconnect()

    async def submit(self) -> Optional[OutcomeResponse]:
        """Save the draft; returns None if a submission is already in flight."""
        if self._submit_lock.locked():
            logger.warning(f"Outcome for patient {self.patient.id} is already being submitted")
            return None
        async with self._submit_lock:
            result = await self.client.submit_outcome(self.patient.id, self.draft)
            logger.info(f"Outcome saved for patient {self.patient.id}: status {result.status.value}")
            return result
