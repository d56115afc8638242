import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from loguru import logger

from .models import Patient, PatientStatus, StoreSnapshot


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def tomorrow_date(clock: Optional[Callable[[], datetime]] = None) -> str:
    """Tomorrow's calendar date (UTC) as YYYY-MM-DD."""
    now = (clock or utc_now)()
    return (now + timedelta(days=1)).date().isoformat()


# Demo patient pool: (name, phone, dob, procedure_time)
DEMO_PATIENTS = [
    ("Wing Ho", "+1234567890", "1980-01-01", "10:00"),
    ("Jane Smith", "+1234567891", "1972-07-22", "09:30"),
    ("Bob Johnson", "+1234567892", "1990-11-08", "11:00"),
    ("Maria Garcia", "+1234567893", "1965-05-20", "13:00"),
    ("David Lee", "+1234567894", "1988-12-03", "14:30"),
]


def create_initial_data(clock: Optional[Callable[[], datetime]] = None) -> StoreSnapshot:
    tomorrow = tomorrow_date(clock)
    patients = [
        Patient(
            id=index,
            name=name,
            phone=phone,
            dob=dob,
            procedure_date=tomorrow,
            procedure_time=procedure_time,
            status=PatientStatus.PENDING,
        )
        for index, (name, phone, dob, procedure_time) in enumerate(DEMO_PATIENTS, start=1)
    ]
    return StoreSnapshot(patients=patients, calls=[])


def main():
    from .store import RecordStore
    from .utils.logging import setup_logging

    setup_logging()
    try:
        store = RecordStore.from_settings()
        store.reset()
    except Exception as e:
        logger.error(f"Failed to reset demo data: {e}")
        sys.exit(1)
    logger.info(f"Reset {store.path} with {len(DEMO_PATIENTS)} demo patients for {tomorrow_date()}")


if __name__ == "__main__":
    main()
