"""
JobStore facade tests.

Covers the scheduler-core surface: storage and retrieval, create
semantics, counts, lookups, the full acquire -> fire -> complete cycle,
and the accepted-but-inert operations.
"""

from unittest.mock import MagicMock

import pytest

from src.jobstore import (
    CompletedExecutionInstruction,
    CronSchedule,
    JobDetail,
    JobKey,
    JobStore,
    JobStoreConfigError,
    ObjectAlreadyExistsError,
    SimpleSchedule,
    StoreConfig,
    Trigger,
    TriggerKey,
    TriggerState,
)
from src.jobstore.document_store import DocumentStoreClient

from .conftest import FIXED_DATETIME, FIXED_MILLIS, after


def _job(name="Job1", group="Group1") -> JobDetail:
    return JobDetail(key=JobKey(name, group), job_class="app.jobs.ReportJob", data_map={"n": 1})


def _trigger(name="Trigger1", job_key=JobKey("Job1", "Group1"), schedule=None) -> Trigger:
    return Trigger.create(
        name,
        job_key,
        schedule or SimpleSchedule(repeat_count=-1, repeat_interval=30_000),
        group="Group1",
        start_time=FIXED_DATETIME,
    )


class TestCreate:

    def test_config_required(self):
        with pytest.raises(JobStoreConfigError):
            JobStore.create(None)

    def test_defaults_to_http_client(self, store_config):
        store = JobStore.create(store_config)

        assert isinstance(store.persistence.store, DocumentStoreClient)
        store.shutdown()

    def test_config_reaches_components(self, document_store):
        config = StoreConfig(host="localhost", index_name="index", search_size=7, order_by_priority=True)
        store = JobStore.create(config, document_store=document_store)

        assert store.persistence.search_size == 7
        assert store.acquisition.order_by_priority is True


class TestLifecycle:

    def test_initialize_sets_signaler(self, job_store, signaler):
        assert job_store.is_initialized
        assert job_store.firing.signaler is signaler

    def test_capabilities(self, job_store):
        assert job_store.supports_persistence() is True
        assert job_store.is_clustered() is True
        assert job_store.get_estimated_time_to_release_and_acquire_trigger() == 10

    def test_shutdown_closes_http_client(self, store_config):
        http_client = MagicMock()
        store = JobStore.create(
            store_config, document_store=DocumentStoreClient(store_config, http_client=http_client)
        )
        store.initialize()

        store.shutdown()

        http_client.close.assert_called_once()
        assert not store.is_initialized


class TestStorage:

    def test_store_and_retrieve(self, job_store):
        job_store.store_job_and_trigger(_job(), _trigger())

        assert job_store.retrieve_job(JobKey("Job1", "Group1")) == _job()
        trigger = job_store.retrieve_trigger(TriggerKey("Trigger1", "Group1"))
        assert trigger == _trigger()
        assert trigger.version is not None

    def test_store_existing_job_without_replace_fails(self, job_store):
        job_store.store_job(_job())

        with pytest.raises(ObjectAlreadyExistsError):
            job_store.store_job(_job())

    def test_store_existing_trigger_without_replace_fails(self, job_store):
        job_store.store_trigger(_trigger())

        with pytest.raises(ObjectAlreadyExistsError):
            job_store.store_trigger(_trigger())

    def test_replace_existing_job(self, job_store):
        job_store.store_job(_job())
        replacement = JobDetail(key=JobKey("Job1", "Group1"), job_class="app.jobs.Other")

        job_store.store_job(replacement, replace_existing=True)

        assert job_store.retrieve_job(JobKey("Job1", "Group1")).job_class == "app.jobs.Other"

    def test_stored_trigger_always_waiting(self, job_store):
        trigger = _trigger()
        trigger.state = TriggerState.ERROR

        stored = job_store.store_trigger(trigger)

        assert stored.state == TriggerState.WAITING
        assert job_store.get_trigger_state(trigger.key) == TriggerState.WAITING

    def test_store_jobs_and_triggers(self, job_store):
        job_store.store_jobs_and_triggers({
            JobKey("Job1", "Group1"): (_job("Job1"), [_trigger("A"), _trigger("B")]),
            JobKey("Job2", "Group1"): (_job("Job2"), [_trigger("C", JobKey("Job2", "Group1"))]),
        })

        assert job_store.get_number_of_jobs() == 2
        assert job_store.get_number_of_triggers() == 3

    def test_cron_trigger_round_trip(self, job_store):
        trigger = _trigger("Hourly", schedule=CronSchedule("0 * * * *"))
        job_store.store_trigger(trigger)

        stored = job_store.retrieve_trigger(trigger.key)

        assert stored.schedule == CronSchedule("0 * * * *")
        assert stored.next_fire_time == FIXED_DATETIME


class TestRemoval:

    def test_remove_job(self, job_store):
        job_store.store_job(_job())

        assert job_store.remove_job(JobKey("Job1", "Group1")) is True
        assert job_store.remove_job(JobKey("Job1", "Group1")) is False
        assert not job_store.check_job_exists(JobKey("Job1", "Group1"))

    def test_remove_jobs_reports_partial_failure(self, job_store):
        job_store.store_job(_job("Job1"))

        assert job_store.remove_jobs([JobKey("Job1", "Group1"), JobKey("Nope", "Group1")]) is False
        assert job_store.get_number_of_jobs() == 0

    def test_remove_triggers(self, job_store):
        job_store.store_trigger(_trigger("A"))
        job_store.store_trigger(_trigger("B"))

        assert job_store.remove_triggers([TriggerKey("A", "Group1"), TriggerKey("B", "Group1")]) is True
        assert not job_store.check_trigger_exists(TriggerKey("A", "Group1"))

    def test_replace_trigger(self, job_store):
        job_store.store_trigger(_trigger("Old"))

        replaced = job_store.replace_trigger(TriggerKey("Old", "Group1"), _trigger("New"))

        assert replaced is True
        assert not job_store.check_trigger_exists(TriggerKey("Old", "Group1"))
        assert job_store.check_trigger_exists(TriggerKey("New", "Group1"))


class TestLookups:

    def test_missing_objects(self, job_store):
        assert job_store.retrieve_job(JobKey("Nope")) is None
        assert job_store.retrieve_trigger(TriggerKey("Nope")) is None
        assert job_store.get_trigger_state(TriggerKey("Nope")) is None

    def test_triggers_for_job(self, job_store):
        job_store.store_job(_job("Job1"))
        job_store.store_job(_job("Job2"))
        job_store.store_trigger(_trigger("A"))
        job_store.store_trigger(_trigger("B"))
        job_store.store_trigger(_trigger("C", JobKey("Job2", "Group1")))

        triggers = job_store.get_triggers_for_job(JobKey("Job1", "Group1"))

        assert sorted(t.key.name for t in triggers) == ["A", "B"]


class TestSchedulingCycle:

    def test_acquire_fire_complete(self, job_store, signaler):
        job_store.store_job_and_trigger(_job(), _trigger())

        acquired = job_store.acquire_next_triggers(FIXED_MILLIS, 1, 0)
        assert job_store.get_trigger_state(TriggerKey("Trigger1", "Group1")) == TriggerState.ACQUIRED

        results = job_store.triggers_fired(acquired)
        assert results[0].ok
        assert job_store.get_trigger_state(TriggerKey("Trigger1", "Group1")) == TriggerState.EXECUTING

        bundle = results[0].bundle
        job_store.triggered_job_complete(bundle.trigger, bundle.job, CompletedExecutionInstruction.NOOP)

        stored = job_store.retrieve_trigger(TriggerKey("Trigger1", "Group1"))
        assert stored.state == TriggerState.WAITING
        assert stored.next_fire_time == after(30)
        signaler.signal_scheduling_change.assert_called_once_with(None)

    def test_release_acquired_trigger(self, job_store):
        job_store.store_job_and_trigger(_job(), _trigger())
        acquired = job_store.acquire_next_triggers(FIXED_MILLIS, 1, 0)

        assert job_store.release_acquired_trigger(acquired[0]) is True
        assert job_store.get_trigger_state(TriggerKey("Trigger1", "Group1")) == TriggerState.WAITING


class TestInertOperations:

    def test_calendars(self, job_store):
        job_store.store_calendar("holidays", object())

        assert job_store.retrieve_calendar("holidays") is None
        assert job_store.remove_calendar("holidays") is False
        assert job_store.get_number_of_calendars() == 0
        assert job_store.get_calendar_names() == []

    def test_pause_and_resume_do_not_touch_state(self, job_store):
        job_store.store_job_and_trigger(_job(), _trigger())

        job_store.pause_trigger(TriggerKey("Trigger1", "Group1"))
        job_store.pause_job(JobKey("Job1", "Group1"))
        job_store.pause_all()
        job_store.resume_all()

        assert job_store.get_trigger_state(TriggerKey("Trigger1", "Group1")) == TriggerState.WAITING
        assert job_store.get_paused_trigger_groups() == set()

    def test_listings_are_empty(self, job_store):
        job_store.store_job_and_trigger(_job(), _trigger())

        assert job_store.get_job_keys() == set()
        assert job_store.get_trigger_keys() == set()
        assert job_store.get_job_group_names() == []
        assert job_store.get_trigger_group_names() == []

    def test_lifecycle_and_setters_leave_data_alone(self, job_store):
        job_store.store_job_and_trigger(_job(), _trigger())

        job_store.scheduler_started()
        job_store.scheduler_paused()
        job_store.scheduler_resumed()
        job_store.set_instance_id("node-1")
        job_store.set_instance_name("scheduler")
        job_store.set_thread_pool_size(4)
        job_store.clear_all_scheduling_data()

        assert job_store.get_number_of_jobs() == 1
        assert job_store.get_number_of_triggers() == 1
