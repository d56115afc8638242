import itertools

import pytest

from prep_call.errors import CallNotFoundError, PatientNotFoundError, PersistenceError
from prep_call.models import CallOutcome, PatientStatus
from prep_call.reconciler import OutcomeReconciler, derive_status

CHECKLIST_FLAGS = [
    "identity_verified",
    "has_supplies",
    "understands_diet",
    "knows_timeline",
    "has_transportation",
    "completed_all_steps",
]


@pytest.fixture
def reconciler(store):
    return OutcomeReconciler(store)


def test_status_depends_only_on_followup_flag():
    """The other six checklist flags never influence the derived status."""
    for values in itertools.product([False, True], repeat=len(CHECKLIST_FLAGS)):
        flags = dict(zip(CHECKLIST_FLAGS, values))
        assert derive_status(CallOutcome(needs_followup=True, **flags)) == PatientStatus.NEEDS_FOLLOWUP
        assert derive_status(CallOutcome(needs_followup=False, **flags)) == PatientStatus.CALLED


@pytest.mark.parametrize("needs_followup, expected", [
    (True, PatientStatus.NEEDS_FOLLOWUP),
    (False, PatientStatus.CALLED),
])
def test_submit_outcome_keeps_call_and_patient_in_step(store, reconciler, needs_followup, expected):
    store.create_call(3)

    result = reconciler.submit_outcome(3, CallOutcome(identity_verified=True, needs_followup=needs_followup))

    assert result.status == expected
    assert store.get_patient(3).status == expected
    saved = store.last_call(3)
    assert saved.id == result.call.id
    assert saved.outcome.needs_followup is needs_followup
    assert (store.get_patient(3).status == PatientStatus.NEEDS_FOLLOWUP) is saved.outcome.needs_followup


def test_latest_outcome_wins(store, reconciler):
    store.create_call(1)
    reconciler.submit_outcome(1, CallOutcome(needs_followup=True))
    store.create_call(1)

    result = reconciler.submit_outcome(1, CallOutcome(needs_followup=False))

    assert result.call.id == 2
    assert store.get_patient(1).status == PatientStatus.CALLED
    assert [c.outcome.needs_followup for c in store.list_calls_by_patient(1)] == [True, False]


def test_write_failure_keeps_call_and_patient_in_step(store, reconciler, tmp_path):
    store.create_call(1)
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where a directory should be")
    store.path = blocker / "data.json"

    with pytest.raises(PersistenceError):
        reconciler.submit_outcome(1, CallOutcome(needs_followup=True))

    assert store.last_call(1).outcome.needs_followup is True
    assert store.get_patient(1).status == PatientStatus.NEEDS_FOLLOWUP
    assert [p.id for p in reconciler.followup_queue()] == [1]


def test_submit_writes_once(store, reconciler, monkeypatch):
    store.create_call(1)
    writes = []
    original_save = store._save
    monkeypatch.setattr(store, "_save", lambda: writes.append(1) or original_save())

    reconciler.submit_outcome(1, CallOutcome())

    assert writes == [1]


def test_submit_without_call_leaves_status(store, reconciler):
    with pytest.raises(CallNotFoundError):
        reconciler.submit_outcome(2, CallOutcome(needs_followup=True))
    assert store.get_patient(2).status == PatientStatus.PENDING


def test_submit_for_unknown_patient(store, reconciler):
    store.create_call(99)
    with pytest.raises(PatientNotFoundError):
        reconciler.submit_outcome(99, CallOutcome())
    assert store.last_call(99).outcome is None


@pytest.mark.parametrize("prior", list(PatientStatus))
def test_resolve_followup_always_sets_called(store, reconciler, prior):
    store.set_patient_status(5, prior)
    reconciler.resolve_followup(5)
    assert store.get_patient(5).status == PatientStatus.CALLED


def test_followup_queue_joins_last_outcome(store, reconciler, clock):
    store.create_call(1)
    clock.advance(30)
    reconciler.submit_outcome(1, CallOutcome(has_supplies=False, needs_followup=True, notes="No MiraLax yet"))
    store.create_call(2)
    reconciler.submit_outcome(2, CallOutcome(needs_followup=False))

    queue = reconciler.followup_queue()

    assert [p.id for p in queue] == [1]
    assert queue[0].name == "Wing Ho"
    assert queue[0].outcome.notes == "No MiraLax yet"
    assert queue[0].call_ended_at == "2024-01-01T00:00:30.000Z"
    dumped = queue[0].model_dump(by_alias=True)
    assert dumped["callEndedAt"] == "2024-01-01T00:00:30.000Z"
    assert dumped["outcome"]["needsFollowup"] is True


def test_followup_without_any_call(store, reconciler):
    """A patient flagged by hand still shows up, with no outcome attached."""
    store.set_patient_status(4, PatientStatus.NEEDS_FOLLOWUP)
    queue = reconciler.followup_queue()
    assert [p.id for p in queue] == [4]
    assert queue[0].outcome is None
    assert queue[0].call_ended_at is None


def test_resolved_patient_leaves_queue(store, reconciler):
    store.create_call(1)
    reconciler.submit_outcome(1, CallOutcome(needs_followup=True))
    reconciler.resolve_followup(1)
    assert reconciler.followup_queue() == []
