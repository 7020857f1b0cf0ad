"""
Tests for the operator CLI (main.py).
"""

import json
import os
from unittest.mock import patch

import pytest

import main as cli
from src.jobstore import (
    InMemoryDocumentStore,
    JobDetail,
    JobKey,
    JobStore,
    SimpleSchedule,
    StoreConfig,
    Trigger,
    TriggerKey,
    TriggerState,
)
from src.jobstore.codec import to_epoch_millis
from src.jobstore.entities import utc_now


@pytest.fixture
def store():
    job_store = JobStore.create(
        StoreConfig(host="localhost", index_name="index"),
        document_store=InMemoryDocumentStore(),
    )
    job = JobDetail(key=JobKey("Job1", "Group1"), job_class="app.jobs.ReportJob")
    trigger = Trigger.create(
        "Trigger1", job.key, SimpleSchedule(repeat_count=-1, repeat_interval=30_000), group="Group1"
    )
    job_store.store_job_and_trigger(job, trigger)
    return job_store


@pytest.fixture
def run(store):
    """Run the CLI against the in-memory store, without touching logs/."""

    def _run(*argv):
        with patch.object(cli, "create_store", return_value=store), \
                patch.object(cli, "setup_logging"):
            return cli.main(list(argv))

    return _run


class TestCommands:

    def test_stats(self, run, capsys):
        assert run("stats") == 0

        assert json.loads(capsys.readouterr().out) == {"job_count": 1, "trigger_count": 1}

    def test_trigger(self, run, capsys):
        assert run("trigger", "Group1", "Trigger1") == 0

        data = json.loads(capsys.readouterr().out)
        assert data["name"] == "Trigger1"
        assert data["state"] == "WAITING"

    def test_trigger_not_found(self, run):
        assert run("trigger", "Group1", "Nope") == 1

    def test_release_acquired(self, run, store):
        acquired = store.acquire_next_triggers(to_epoch_millis(utc_now()), 1, 0)
        assert len(acquired) == 1

        assert run("release", "Group1", "Trigger1") == 0
        assert store.get_trigger_state(TriggerKey("Trigger1", "Group1")) == TriggerState.WAITING

    def test_release_waiting_refused(self, run):
        assert run("release", "Group1", "Trigger1") == 2

    def test_release_not_found(self, run):
        assert run("release", "Group1", "Nope") == 1

    def test_release_executing_reports_actual_state(self, run, store):
        store.triggers_fired(store.acquire_next_triggers(to_epoch_millis(utc_now()), 1, 0))

        with patch.object(cli, "logger") as mock_logger:
            assert run("release", "Group1", "Trigger1") == 2

        message = mock_logger.warning.call_args[0][0]
        assert "Trigger was EXECUTING, not ACQUIRED" in message


class TestConfiguration:

    def test_missing_environment(self):
        env = {k: v for k, v in os.environ.items() if not k.startswith("JOBSTORE_")}
        with patch.dict(os.environ, env, clear=True), \
                patch.object(cli, "load_dotenv"), \
                patch.object(cli, "setup_logging"):
            assert cli.main(["stats"]) == 1

    def test_serve_runs_uvicorn(self):
        with patch("uvicorn.run") as mock_run, \
                patch.object(cli, "load_dotenv"), \
                patch.object(cli, "setup_logging"):
            assert cli.main(["serve", "--port", "9001"]) == 0

        mock_run.assert_called_once_with("src.api.main:app", host="127.0.0.1", port=9001)
