from typing import Any, Mapping

from pydantic.alias_generators import to_camel

from ..models import CallOutcome

UPDATE_STEPS_ACTION = "update_steps"
PATIENT_CONTEXT_ACTION = "get_patient_context"

_BOOLEAN_FIELDS = [
    name for name, field in CallOutcome.model_fields.items() if field.annotation is bool
]


def merge_checklist_update(draft: CallOutcome, payload: Mapping[str, Any]) -> CallOutcome:
    """Return a copy of ``draft`` with the well-typed fields of ``payload`` applied.

    The payload uses the agent's camelCase keys. A key that is missing, or whose
    value has the wrong type (e.g. ``"yes"`` for a boolean), keeps the draft value.
    """
    updates = {}
    for name in _BOOLEAN_FIELDS:
        value = payload.get(to_camel(name))
        # bool only: 0/1 are ints and must not sneak through
        if isinstance(value, bool):
            updates[name] = value
    notes = payload.get("notes")
    if isinstance(notes, str):
        updates["notes"] = notes
    return draft.model_copy(update=updates)
