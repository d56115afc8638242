import json
import tempfile

import pytest

from prep_call.config.settings import Settings
from prep_call.errors import PatientNotFoundError, PersistenceError
from prep_call.models import CallOutcome, PatientStatus
from prep_call.store import RecordStore


class TestSeedAndLoad:
    def test_new_store_is_seeded_and_persisted(self, store, tmp_path):
        """A missing data file is created with the demo patients for tomorrow."""
        patients = store.list_patients()
        assert len(patients) == 5
        assert all(p.status == PatientStatus.PENDING for p in patients)
        assert all(p.procedure_date == "2024-01-02" for p in patients)

        data = json.loads((tmp_path / "data.json").read_text())
        assert set(data) == {"patients", "calls"}
        assert len(data["patients"]) == 5
        assert data["calls"] == []

    def test_reload_keeps_calls_and_outcomes(self, store, tmp_path, clock):
        store.create_call(1)
        store.attach_outcome(1, CallOutcome(identity_verified=True, notes="ok"))

        reloaded = RecordStore(tmp_path / "data.json", clock=clock)
        calls = reloaded.list_calls_by_patient(1)
        assert len(calls) == 1
        assert calls[0].outcome.identity_verified is True
        assert calls[0].outcome.notes == "ok"
        # ids keep counting from what is on disk
        assert reloaded.create_call(2).id == 2

    def test_outcome_is_written_with_camel_case_keys(self, store, tmp_path):
        store.create_call(3)
        store.attach_outcome(3, CallOutcome(has_supplies=True, needs_followup=True))

        data = json.loads((tmp_path / "data.json").read_text())
        outcome = data["calls"][0]["outcome"]
        assert outcome["hasSupplies"] is True
        assert outcome["needsFollowup"] is True
        assert "has_supplies" not in outcome

    def test_corrupt_file_falls_back_to_seed(self, tmp_path, clock):
        path = tmp_path / "data.json"
        path.write_text("{not json")

        store = RecordStore(path, clock=clock)

        assert len(store.list_patients()) == 5
        assert json.loads(path.read_text())["calls"] == []

    def test_write_failure_raises(self, tmp_path, clock):
        """Write errors are surfaced, never silently dropped."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where a directory should be")

        with pytest.raises(PersistenceError):
            RecordStore(blocker / "data.json", clock=clock)

    def test_from_settings_temp_dir(self, tmp_path, monkeypatch, clock):
        monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))
        settings = Settings(DATA_DIR="unused", DATA_FILE="prep.json", USE_TEMP_DATA_DIR=True)

        store = RecordStore.from_settings(settings, clock=clock)

        assert store.path == tmp_path / "prep.json"
        assert store.path.exists()


class TestPatients:
    def test_list_sorted_by_procedure_time(self, store):
        times = [p.procedure_time for p in store.list_patients()]
        assert times == ["09:30", "10:00", "11:00", "13:00", "14:30"]

    def test_filter_by_status_returns_exact_subset(self, store):
        store.set_patient_status(1, PatientStatus.CALLED)
        store.set_patient_status(4, PatientStatus.CALLED)
        store.set_patient_status(2, PatientStatus.NEEDS_FOLLOWUP)

        called = store.list_patients(status="called")
        assert [p.id for p in called] == [1, 4]
        assert [p.id for p in store.list_patients(status=PatientStatus.NEEDS_FOLLOWUP)] == [2]
        assert [p.id for p in store.list_patients(status="pending")] == [3, 5]

    def test_unknown_status_matches_nothing(self, store):
        assert store.list_patients(status="maybe") == []

    def test_filter_by_date(self, store):
        assert len(store.list_patients(date="2024-01-02")) == 5
        assert store.list_patients(date="2030-01-01") == []

    def test_get_patient(self, store):
        assert store.get_patient(2).name == "Jane Smith"
        with pytest.raises(PatientNotFoundError):
            store.get_patient(42)

    def test_returned_patients_are_copies(self, store):
        patient = store.get_patient(1)
        patient.status = PatientStatus.CALLED
        assert store.get_patient(1).status == PatientStatus.PENDING

    def test_set_status_unknown_patient_is_noop(self, store, tmp_path):
        before = (tmp_path / "data.json").read_text()
        store.set_patient_status(42, PatientStatus.CALLED)
        assert (tmp_path / "data.json").read_text() == before


class TestCalls:
    def test_create_call(self, store):
        call = store.create_call(1)
        assert call.id == 1
        assert call.patient_id == 1
        assert call.started_at == "2024-01-01T00:00:00.000Z"
        assert call.ended_at is None
        assert call.duration_seconds is None
        assert call.outcome is None
        assert store.create_call(2).id == 2

    def test_calls_listed_in_creation_order(self, store):
        store.create_call(1)
        store.create_call(2)
        store.create_call(1)
        assert [c.id for c in store.list_calls_by_patient(1)] == [1, 3]

    def test_attach_outcome_updates_latest_call(self, store):
        first = store.create_call(1)
        store.create_call(2)
        latest = store.create_call(1)

        updated = store.attach_outcome(1, CallOutcome(notes="second try"))

        assert updated.id == latest.id
        calls = {c.id: c for c in store.list_calls_by_patient(1)}
        assert calls[first.id].outcome is None
        assert calls[latest.id].outcome.notes == "second try"
        assert store.last_call(2).outcome is None

    def test_duration_is_whole_seconds(self, store, clock):
        store.create_call(1)
        clock.advance(10)

        call = store.attach_outcome(1, CallOutcome())

        assert call.started_at == "2024-01-01T00:00:00.000Z"
        assert call.ended_at == "2024-01-01T00:00:10.000Z"
        assert call.duration_seconds == 10

    def test_duration_is_floored(self, store, clock):
        store.create_call(1)
        clock.advance(4.9)
        assert store.attach_outcome(1, CallOutcome()).duration_seconds == 4

    def test_attach_outcome_without_calls(self, store):
        assert store.attach_outcome(1, CallOutcome()) is None


class TestStatsAndReset:
    def test_stats_for_date(self, store):
        store.set_patient_status(1, PatientStatus.CALLED)
        store.set_patient_status(2, PatientStatus.NEEDS_FOLLOWUP)

        stats = store.stats("2024-01-02")
        assert stats.total_patients == 5
        assert stats.pending == 3
        assert stats.called == 1
        assert stats.needs_followup == 1
        assert stats.model_dump(by_alias=True) == {"totalPatients": 5, "pending": 3, "called": 1, "needsFollowup": 1}

    def test_stats_other_date_is_empty(self, store):
        assert store.stats("2030-01-01").total_patients == 0

    def test_reset_restores_seed(self, store, clock):
        store.create_call(1)
        store.set_patient_status(1, PatientStatus.NEEDS_FOLLOWUP)
        clock.advance(86400)

        store.reset()

        patients = store.list_patients()
        assert len(patients) == 5
        assert {p.status for p in patients} == {PatientStatus.PENDING}
        # "tomorrow" is relative to the time of the reset
        assert {p.procedure_date for p in patients} == {"2024-01-03"}
        assert store.list_calls_by_patient(1) == []
        assert store.create_call(1).id == 1
