"""Record store for patients and calls.

All records live in memory and the full snapshot is rewritten to a single
JSON file after every mutation ("last write wins"). Every access goes through
``RecordStore.lock`` so a find-then-update sequence is atomic within this
process. Nothing guards the file against a second process writing to it.
"""

import math
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from loguru import logger

from .config.settings import Settings, get_settings
from .errors import PatientNotFoundError, PersistenceError
from .models import Call, CallOutcome, Patient, PatientStatus, Stats, StoreSnapshot
from .seed import create_initial_data, tomorrow_date, utc_now


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class RecordStore:
    def __init__(self, path: Union[str, Path], clock: Optional[Callable[[], datetime]] = None):
        self.path = Path(path)
        self.clock = clock or utc_now
        self.lock = threading.RLock()
        self._patients: List[Patient] = []
        self._calls: List[Call] = []
        # patient_id -> position of that patient's most recently created call
        self._last_call_index: Dict[int, int] = {}
        self._next_call_id = 1
        self._load()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, clock: Optional[Callable[[], datetime]] = None) -> "RecordStore":
        settings = settings or get_settings()
        if settings.USE_TEMP_DATA_DIR:
            data_dir = Path(tempfile.gettempdir())
        else:
            data_dir = Path(settings.DATA_DIR)
        return cls(data_dir / settings.DATA_FILE, clock=clock)

    # --- persistence ---

    def _load(self):
        with self.lock:
            if self.path.exists():
                try:
                    snapshot = StoreSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
                    self._replace(snapshot)
                    logger.info(f"Loaded {len(self._patients)} patients and {len(self._calls)} calls from {self.path}")
                    return
                except (OSError, ValueError) as e:
                    logger.error(f"Error loading {self.path}, creating new database: {e}")

            self._replace(create_initial_data(self.clock))
            self._save()
            logger.info(f"Created new database with {len(self._patients)} demo patients for {tomorrow_date(self.clock)}")

    def save(self):
        """Write the current snapshot; used after changes made with ``persist=False``."""
        with self.lock:
            self._save()

    def _save(self):
        snapshot = StoreSnapshot(patients=self._patients, calls=self._calls)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(snapshot.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
        except OSError as e:
            # The in-memory change has already happened and is kept.
            logger.error(f"Error saving database to {self.path}: {e}")
            raise PersistenceError(f"Failed to write {self.path}") from e

    def _replace(self, snapshot: StoreSnapshot):
        self._patients = list(snapshot.patients)
        self._calls = list(snapshot.calls)
        self._last_call_index = {}
        for position, call in enumerate(self._calls):
            self._last_call_index[call.patient_id] = position
        self._next_call_id = max((call.id for call in self._calls), default=0) + 1

    def _find_patient(self, patient_id: int) -> Optional[Patient]:
        return next((p for p in self._patients if p.id == patient_id), None)

    # --- patients ---

    def list_patients(self, date: Optional[str] = None, status: Optional[Union[PatientStatus, str]] = None) -> List[Patient]:
        with self.lock:
            patients = self._patients
            if date:
                patients = [p for p in patients if p.procedure_date == date]
            if status:
                # Unknown status values match nothing
                patients = [p for p in patients if p.status.value == status]
            ordered = sorted(patients, key=lambda p: p.procedure_time)
            return [p.model_copy(deep=True) for p in ordered]

    def get_patient(self, patient_id: int) -> Patient:
        with self.lock:
            patient = self._find_patient(patient_id)
            if patient is None:
                raise PatientNotFoundError(patient_id)
            return patient.model_copy(deep=True)

    def set_patient_status(self, patient_id: int, status: Union[PatientStatus, str], persist: bool = True):
        with self.lock:
            patient = self._find_patient(patient_id)
            if patient is None:
                logger.warning(f"Ignoring status update for unknown patient {patient_id}")
                return
            patient.status = PatientStatus(status)
            if persist:
                self._save()

    # --- calls ---

    def create_call(self, patient_id: int) -> Call:
        with self.lock:
            call = Call(
                id=self._next_call_id,
                patient_id=patient_id,
                started_at=format_timestamp(self.clock()),
            )
            self._next_call_id += 1
            self._calls.append(call)
            self._last_call_index[patient_id] = len(self._calls) - 1
            self._save()
            return call.model_copy(deep=True)

    def list_calls_by_patient(self, patient_id: int) -> List[Call]:
        with self.lock:
            return [c.model_copy(deep=True) for c in self._calls if c.patient_id == patient_id]

    def last_call(self, patient_id: int) -> Optional[Call]:
        with self.lock:
            position = self._last_call_index.get(patient_id)
            if position is None:
                return None
            return self._calls[position].model_copy(deep=True)

    def attach_outcome(self, patient_id: int, outcome: CallOutcome, persist: bool = True) -> Optional[Call]:
        """Close the patient's most recent call with ``outcome``.

        Returns the updated call, or None when the patient has no calls. With
        ``persist=False`` the change stays in memory until ``save()``.
        """
        with self.lock:
            position = self._last_call_index.get(patient_id)
            if position is None:
                return None
            call = self._calls[position]
            ended_at = self.clock()
            call.ended_at = format_timestamp(ended_at)
            call.outcome = outcome.model_copy(deep=True)
            if call.started_at:
                elapsed = ended_at - parse_timestamp(call.started_at)
                call.duration_seconds = math.floor(elapsed.total_seconds())
            if persist:
                self._save()
            return call.model_copy(deep=True)

    # --- reporting / admin ---

    def stats(self, date: str) -> Stats:
        with self.lock:
            patients = [p for p in self._patients if p.procedure_date == date]
            return Stats(
                total_patients=len(patients),
                pending=sum(1 for p in patients if p.status == PatientStatus.PENDING),
                called=sum(1 for p in patients if p.status == PatientStatus.CALLED),
                needs_followup=sum(1 for p in patients if p.status == PatientStatus.NEEDS_FOLLOWUP),
            )

    def reset(self):
        with self.lock:
            self._replace(create_initial_data(self.clock))
            self._save()
            logger.info(f"Database reset to {len(self._patients)} demo patients")
