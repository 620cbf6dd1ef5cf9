"""Guarded transition primitive."""

from __future__ import annotations

import typing

import pytest

from pickup_api.services import errors
from pickup_api.services.job_store import JobStore


def _accept(store: JobStore, job: dict, collector_id: str, version: int | None = None) -> dict:
    return store.transition_if_current(
        job["pickup_id"], "PENDING", "ACCEPTED",
        expected_version=job["version"] if version is None else version,
        actor_id=collector_id,
        actor_role="COLLECTOR",
        action="PICKUP_ACCEPTED",
        assigned_collector_id=collector_id,
    )


def test_list_method_does_not_shadow_builtin_in_annotations() -> None:
    assert typing.get_type_hints(JobStore.list)["return"] == list[dict]
    assert typing.get_type_hints(JobStore.audit_trail)["return"] == list[dict]


def test_created_job_is_pending_and_unassigned(make_job, clock) -> None:
    job = make_job()

    assert job["status"] == "PENDING"
    assert job["assigned_collector_id"] is None
    assert job["version"] == 1
    assert job["created_at"] == clock()
    assert job["updated_at"] == clock()


def test_transition_bumps_version_and_sets_fields(lifecycle, make_job, make_collector, clock) -> None:
    collector = make_collector()
    job = make_job()
    clock.advance(minutes=5)

    updated = _accept(lifecycle.jobs, job, collector["collector_id"])

    assert updated["status"] == "ACCEPTED"
    assert updated["assigned_collector_id"] == collector["collector_id"]
    assert updated["version"] == 2
    assert updated["updated_at"] == clock()
    assert updated["created_at"] == job["created_at"]


def test_stale_version_is_a_conflict_and_changes_nothing(lifecycle, make_job, make_collector) -> None:
    first = make_collector()
    second = make_collector()
    job = make_job()
    store = lifecycle.jobs

    _accept(store, job, first["collector_id"])
    with pytest.raises(errors.Conflict):
        _accept(store, job, second["collector_id"])

    current = store.get(job["pickup_id"])
    assert current["assigned_collector_id"] == first["collector_id"]
    assert current["version"] == 2


def test_wrong_expected_status_is_a_conflict(lifecycle, make_job) -> None:
    job = make_job()

    with pytest.raises(errors.Conflict):
        lifecycle.jobs.transition_if_current(
            job["pickup_id"], "ACCEPTED", "IN_PROGRESS",
            expected_version=job["version"],
            actor_id="c", actor_role="COLLECTOR", action="PICKUP_STARTED",
        )
    assert lifecycle.jobs.get(job["pickup_id"])["status"] == "PENDING"


def test_unknown_pickup_is_not_found(lifecycle) -> None:
    with pytest.raises(errors.NotFound):
        lifecycle.jobs.transition_if_current(
            "missing", "PENDING", "CANCELLED",
            expected_version=1, actor_id="op", actor_role="OPERATOR", action="PICKUP_CANCELLED",
        )


def test_entering_assigned_state_requires_a_collector(lifecycle, make_job) -> None:
    job = make_job()

    with pytest.raises(ValueError):
        lifecycle.jobs.transition_if_current(
            job["pickup_id"], "PENDING", "ACCEPTED",
            expected_version=1, actor_id="op", actor_role="OPERATOR", action="PICKUP_ACCEPTED",
        )
    assert lifecycle.jobs.get(job["pickup_id"])["version"] == 1


def test_leaving_assigned_states_clears_the_collector(lifecycle, make_job, make_collector) -> None:
    collector = make_collector()
    accepted = _accept(lifecycle.jobs, make_job(), collector["collector_id"])

    cancelled = lifecycle.jobs.transition_if_current(
        accepted["pickup_id"], "ACCEPTED", "CANCELLED",
        expected_version=accepted["version"],
        actor_id="op", actor_role="OPERATOR", action="PICKUP_CANCELLED",
    )

    assert cancelled["status"] == "CANCELLED"
    assert cancelled["assigned_collector_id"] is None


def test_each_successful_transition_writes_one_audit_row(lifecycle, make_job, make_collector) -> None:
    collector = make_collector()
    job = make_job()
    _accept(lifecycle.jobs, job, collector["collector_id"])
    with pytest.raises(errors.Conflict):
        _accept(lifecycle.jobs, job, collector["collector_id"])

    trail = lifecycle.jobs.audit_trail(job["pickup_id"])

    assert [row["action"] for row in trail] == ["PICKUP_CREATED", "PICKUP_ACCEPTED"]
    assert trail[1]["details"]["collector_id"] == collector["collector_id"]
    assert trail[1]["details"]["from"] == "PENDING"
    assert trail[1]["details"]["to"] == "ACCEPTED"


def test_list_filters(lifecycle, make_job, make_collector, clock) -> None:
    collector = make_collector()
    a = make_job(requester_id="alice")
    clock.advance(minutes=1)
    b = make_job(requester_id="bob")
    clock.advance(minutes=1)
    c = make_job(requester_id="alice")
    _accept(lifecycle.jobs, b, collector["collector_id"])

    assert [j["pickup_id"] for j in lifecycle.jobs.list()] == [c["pickup_id"], b["pickup_id"], a["pickup_id"]]
    assert [j["pickup_id"] for j in lifecycle.jobs.list(requester_id="alice")] == [c["pickup_id"], a["pickup_id"]]
    assert [j["pickup_id"] for j in lifecycle.jobs.list(status="ACCEPTED")] == [b["pickup_id"]]
    assert [j["pickup_id"] for j in lifecycle.jobs.list(collector_id=collector["collector_id"])] == [b["pickup_id"]]


def test_collector_feed_shows_open_and_own_jobs(lifecycle, make_job, make_collector, clock) -> None:
    mine = make_collector()
    other = make_collector()
    open_job = make_job()
    clock.advance(minutes=1)
    my_job = _accept(lifecycle.jobs, make_job(), mine["collector_id"])
    clock.advance(minutes=1)
    _accept(lifecycle.jobs, make_job(), other["collector_id"])

    feed = lifecycle.jobs.collector_feed(mine["collector_id"])

    assert {j["pickup_id"] for j in feed} == {open_job["pickup_id"], my_job["pickup_id"]}
    assert [j["pickup_id"] for j in lifecycle.jobs.collector_feed(mine["collector_id"], status="ACCEPTED")] == [
        my_job["pickup_id"]
    ]
