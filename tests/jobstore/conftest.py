"""
Job Store Test Fixtures.

Base fixtures:
  - Empty in-memory document store
  - Fixed clock for fire bundles
  - Mocked scheduler signaler

Helpers:
  - InterleavingStore: runs another node's work between a read and the
    following conditional write
  - StaleIndexStore: search returns a fixed (outdated) set of hits
  - FailingStore: transport failure on selected documents
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from unittest.mock import MagicMock

import pytest

from src.jobstore import (
    AcquisitionEngine,
    FiringProtocol,
    InMemoryDocumentStore,
    JobDetail,
    JobKey,
    JobPersistenceError,
    JobStore,
    PersistenceAdapter,
    REPEAT_INDEFINITELY,
    SimpleSchedule,
    StoreConfig,
    Trigger,
    TriggerKey,
    TriggerState,
)
from src.jobstore.codec import encode_trigger, to_epoch_millis
from src.jobstore.document_store import SearchHit
from src.jobstore.persistence import TRIGGER_COLLECTION


# Fixed time for deterministic tests
FIXED_DATETIME = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
FIXED_MILLIS = to_epoch_millis(FIXED_DATETIME)
INTERVAL_MS = 30_000


# =============================================================================
# Store wrappers
# =============================================================================


class _DelegatingStore:
    def __init__(self, inner):
        self.inner = inner

    def get(self, collection, doc_id):
        return self.inner.get(collection, doc_id)

    def put(self, collection, doc_id, document, expected_version=None, create_only=False):
        return self.inner.put(
            collection, doc_id, document,
            expected_version=expected_version, create_only=create_only,
        )

    def delete(self, collection, doc_id):
        return self.inner.delete(collection, doc_id)

    def search(self, collection, query, size=None):
        return self.inner.search(collection, query, size=size)

    def count(self, collection):
        return self.inner.count(collection)


class InterleavingStore(_DelegatingStore):
    """
    Runs a hook once, right before the first version-checked write.

    The hook plays the other scheduler node: whatever it writes lands
    between this node's read and its conditional write.
    """

    def __init__(self, inner, hook: Optional[Callable[[], None]] = None):
        super().__init__(inner)
        self.hook = hook

    def put(self, collection, doc_id, document, expected_version=None, create_only=False):
        if expected_version is not None and self.hook is not None:
            hook, self.hook = self.hook, None
            hook()
        return super().put(
            collection, doc_id, document,
            expected_version=expected_version, create_only=create_only,
        )


class StaleIndexStore(_DelegatingStore):
    """Search answers from a frozen snapshot instead of the live documents."""

    def __init__(self, inner, hits: list[SearchHit]):
        super().__init__(inner)
        self.hits = hits

    def search(self, collection, query, size=None):
        return list(self.hits)


class FailingStore(_DelegatingStore):
    """Raises JobPersistenceError when reading any of the given document ids."""

    def __init__(self, inner, fail_get_ids: set[str]):
        super().__init__(inner)
        self.fail_get_ids = set(fail_get_ids)

    def get(self, collection, doc_id):
        if doc_id in self.fail_get_ids:
            raise JobPersistenceError(f"Connection refused reading {doc_id}")
        return super().get(collection, doc_id)


# =============================================================================
# Component fixtures
# =============================================================================


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def persistence(document_store) -> PersistenceAdapter:
    return PersistenceAdapter(document_store)


@pytest.fixture
def acquisition(persistence) -> AcquisitionEngine:
    return AcquisitionEngine(persistence)


@pytest.fixture
def signaler() -> MagicMock:
    return MagicMock()


@pytest.fixture
def firing(persistence, signaler) -> FiringProtocol:
    return FiringProtocol(persistence, signaler=signaler, clock=lambda: FIXED_DATETIME)


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(host="localhost", index_name="index", type_prefix="prefix_")


@pytest.fixture
def job_store(store_config, document_store, signaler) -> JobStore:
    store = JobStore.create(store_config, document_store=document_store)
    store.initialize(signaler)
    return store


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def create_job(persistence):
    """Factory for stored jobs."""

    def _create(name: str = "Job1", group: str = "Group1", **data) -> JobDetail:
        job = JobDetail(
            key=JobKey(name, group),
            job_class="app.jobs.ReportJob",
            data_map=data,
        )
        persistence.store_job(job, replace_existing=True)
        return job

    return _create


@pytest.fixture
def create_trigger(persistence):
    """
    Factory for stored simple triggers.

    Triggers are stored WAITING; any other state is forced with an
    unconditional write, as if an earlier protocol step had run.
    """

    def _create(
        name: str = "Trigger1",
        group: str = "Group1",
        job_key: JobKey = JobKey("Job1", "Group1"),
        next_fire_time: Optional[datetime] = FIXED_DATETIME,
        state: TriggerState = TriggerState.WAITING,
        priority: int = 5,
        schedule=None,
    ) -> Trigger:
        trigger = Trigger(
            key=TriggerKey(name, group),
            job_key=job_key,
            schedule=schedule or SimpleSchedule(
                repeat_count=REPEAT_INDEFINITELY, repeat_interval=INTERVAL_MS
            ),
            start_time=FIXED_DATETIME,
            next_fire_time=next_fire_time,
            priority=priority,
        )
        persistence.store_trigger(trigger, replace_existing=True)

        if state != TriggerState.WAITING:
            persistence.store.put(
                TRIGGER_COLLECTION, str(trigger.key), encode_trigger(trigger, state=state)
            )

        return persistence.retrieve_trigger(trigger.key)

    return _create


@pytest.fixture
def corrupt_document(document_store):
    """
    Overwrite fields of a stored document, bypassing the codec.

    Passing None for a field removes it.
    """

    def _corrupt(doc_id: str, collection: str = TRIGGER_COLLECTION, **fields) -> None:
        source = dict(document_store.get(collection, doc_id).source)
        for field, value in fields.items():
            if value is None:
                source.pop(field, None)
            else:
                source[field] = value
        document_store.put(collection, doc_id, source)

    return _corrupt


@pytest.fixture
def state_of(persistence):
    """Read a trigger's persisted state (None if it is gone)."""

    def _state(name: str = "Trigger1", group: str = "Group1") -> Optional[TriggerState]:
        trigger = persistence.retrieve_trigger(TriggerKey(name, group))
        return trigger.state if trigger else None

    return _state


def after(seconds: int) -> datetime:
    return FIXED_DATETIME + timedelta(seconds=seconds)
