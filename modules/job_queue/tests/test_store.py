"""
Tests for the job store and its guarded transitions.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from modules.job_queue.store import JobStore
from shared.errors import StoreError


def test_seed_creates_pending_jobs_in_order(make_store):
    """Test that seeding creates one pending job per prompt, in order."""
    store = make_store(4)
    jobs = store.snapshot()

    assert len(store) == 4
    assert [job.prompt for job in jobs] == ["shot 0", "shot 1", "shot 2", "shot 3"]
    assert [job.index for job in jobs] == [0, 1, 2, 3]
    assert all(job.status == "pending" for job in jobs)
    assert all(job.artifact is None for job in jobs)
    assert len({job.id for job in jobs}) == 4
    assert all(job.id.startswith(f"shot-{job.index}-") for job in jobs)


def test_seed_rejects_non_empty_store(make_store):
    """Test that seeding twice without clearing raises StoreError."""
    store = make_store(2)

    with pytest.raises(StoreError, match="clear it before seeding"):
        store.seed(["another"])

    store.clear()
    store.seed(["another"])
    assert len(store) == 1


def test_apply_transition_with_matching_status(make_store, artifact):
    """Test that a matching from-set applies status and patch."""
    store = make_store(2)
    job_id = store.snapshot()[0].id

    assert store.apply_transition(job_id, {"pending"}, "generating") is True
    assert store.apply_transition(job_id, {"generating"}, "completed", artifact=artifact) is True

    job = store.get(job_id)
    assert job.status == "completed"
    assert job.artifact == artifact


def test_apply_transition_non_matching_is_noop(make_store, artifact):
    """Test that a non-matching from-set changes nothing and raises nothing."""
    store = make_store(3)
    before = store.snapshot()
    job_id = before[1].id

    assert store.apply_transition(job_id, {"generating"}, "completed", artifact=artifact) is False
    assert store.apply_transition(job_id, {"failed"}, "pending") is False

    assert store.snapshot() == before


def test_apply_transition_unknown_job_is_noop(make_store):
    """Test that transitions for unknown ids are ignored."""
    store = make_store(2)
    before = store.snapshot()

    assert store.apply_transition("shot-99-0", {"pending"}, "generating") is False
    assert store.snapshot() == before


def test_transition_never_changes_prompt(make_store):
    """Test that a patch cannot rewrite the prompt."""
    store = make_store(1)
    job_id = store.snapshot()[0].id

    store.apply_transition(job_id, {"pending"}, "generating", prompt="rewritten")

    assert store.get(job_id).prompt == "shot 0"


def test_artifact_dropped_when_leaving_completed(make_store, artifact):
    """Test that re-queuing a completed job clears its artifact."""
    store = make_store(1)
    job_id = store.snapshot()[0].id
    store.apply_transition(job_id, {"pending"}, "generating")
    store.apply_transition(job_id, {"generating"}, "completed", artifact=artifact)

    store.apply_transition(job_id, {"completed"}, "pending")

    job = store.get(job_id)
    assert job.status == "pending"
    assert job.artifact is None


def test_error_kept_only_while_failed(make_store):
    """Test that the failure message is cleared on retry."""
    store = make_store(1)
    job_id = store.snapshot()[0].id
    store.apply_transition(job_id, {"pending"}, "generating")
    store.apply_transition(job_id, {"generating"}, "failed", error="boom")
    assert store.get(job_id).error == "boom"

    store.apply_transition(job_id, {"failed"}, "pending")
    assert store.get(job_id).error is None


def test_completed_without_artifact_is_rejected(make_store):
    """Test that the artifact/status invariant is enforced."""
    store = make_store(1)
    job_id = store.snapshot()[0].id
    store.apply_transition(job_id, {"pending"}, "generating")

    with pytest.raises(PydanticValidationError):
        store.apply_transition(job_id, {"generating"}, "completed")

    assert store.get(job_id).status == "generating"


def test_snapshot_is_immutable_view(make_store):
    """Test that earlier snapshots are unaffected by later transitions."""
    store = make_store(2)
    snapshot = store.snapshot()

    store.apply_transition(snapshot[0].id, {"pending"}, "generating")

    assert isinstance(snapshot, tuple)
    assert snapshot[0].status == "pending"
    assert store.snapshot()[0].status == "generating"


def test_progress_counts(make_store, artifact):
    """Test derived counts, ratio and label."""
    store = make_store(4)
    jobs = store.snapshot()
    for job in jobs[:3]:
        store.apply_transition(job.id, {"pending"}, "generating")
    store.apply_transition(jobs[0].id, {"generating"}, "completed", artifact=artifact)
    store.apply_transition(jobs[1].id, {"generating"}, "failed", error="x")

    progress = store.progress()
    assert (progress.total, progress.pending, progress.generating, progress.completed, progress.failed) == (4, 1, 1, 1, 1)
    assert progress.ratio == 0.25
    assert progress.label == "1/4"
    assert store.pending_indices() == [3]
    assert store.count("generating") == 1
    assert store.is_settled() is False


def test_progress_of_empty_store():
    """Test that an empty store reports zero progress."""
    progress = JobStore().progress()
    assert progress.total == 0
    assert progress.ratio == 0.0
    assert progress.label == "0/0"


def test_listeners_receive_updates(make_store):
    """Test subscribe/unsubscribe and listener isolation."""
    store = make_store(2)
    seen = []

    def broken(job):
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    unsubscribe = store.subscribe(lambda job: seen.append((job.index, job.status)))

    store.apply_transition(store.snapshot()[0].id, {"pending"}, "generating")
    unsubscribe()
    store.apply_transition(store.snapshot()[1].id, {"pending"}, "generating")

    assert seen == [(0, "generating")]
    assert store.count("generating") == 2
