"""Error types shared by the store, reconciler, token service and call session."""

from typing import Optional


class PrepCallError(Exception):
    """Base class for all prep-call errors."""


class PatientNotFoundError(PrepCallError):
    def __init__(self, patient_id: int):
        super().__init__(f"Patient {patient_id} not found")
        self.patient_id = patient_id


class CallNotFoundError(PrepCallError):
    def __init__(self, patient_id: int):
        super().__init__(f"No call found for patient {patient_id}")
        self.patient_id = patient_id


class ValidationError(PrepCallError):
    """A request is missing a required field or carries a malformed one."""


class ConfigurationError(PrepCallError):
    """A required setting (usually an API key) is not configured."""


class UpstreamServiceError(PrepCallError):
    """An external HTTP service answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(PrepCallError):
    """The real-time session failed to connect or dropped."""


class PersistenceError(PrepCallError):
    """The store snapshot could not be written to disk."""
