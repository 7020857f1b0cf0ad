"""
Job Store - entry point used by the scheduler core.

Wires together:
- DocumentStore (HTTP client or in-memory)
- PersistenceAdapter (jobs/triggers, version-checked transitions)
- AcquisitionEngine (search-then-claim)
- FiringProtocol (fire and completion)

Usage:
    store = JobStore.create(StoreConfig.from_env())
    store.initialize(signaler)
    triggers = store.acquire_next_triggers(now_ms, max_count, window_ms)
    results = store.triggers_fired(triggers)
    ...
    store.triggered_job_complete(trigger, job, instruction)

Calendars, pause/resume and group listings are accepted but do nothing.
"""

import logging
from typing import Iterable, Mapping, Optional

from .acquisition import AcquisitionEngine
from .config import StoreConfig
from .document_store import DocumentStore, DocumentStoreClient
from .entities import (
    CompletedExecutionInstruction,
    FireResult,
    JobDetail,
    JobKey,
    Trigger,
    TriggerKey,
    TriggerState,
)
from .errors import JobStoreConfigError
from .firing import FiringProtocol, SchedulerSignaler
from .persistence import PersistenceAdapter, TransitionResult


logger = logging.getLogger(__name__)


ESTIMATED_RELEASE_AND_ACQUIRE_MILLIS = 10


class JobStore:
    """
    Clustered job store on top of a versioned document store.

    Safe to use from several scheduler processes at once; no in-process
    locks are taken.
    """

    def __init__(
        self,
        persistence: PersistenceAdapter,
        acquisition: AcquisitionEngine,
        firing: FiringProtocol,
        config: Optional[StoreConfig] = None,
    ):
        """
        Initialize JobStore with all components.

        Use JobStore.create() for convenient construction.
        """
        self.persistence = persistence
        self.acquisition = acquisition
        self.firing = firing
        self.config = config

        self._initialized = False

    @classmethod
    def create(
        cls,
        config: StoreConfig,
        document_store: Optional[DocumentStore] = None,
        signaler: Optional[SchedulerSignaler] = None,
    ) -> "JobStore":
        """
        Create a JobStore with all components wired together.

        Args:
            config: Store configuration
            document_store: Override the HTTP client (e.g. InMemoryDocumentStore)
            signaler: Scheduler core callback; can also be given to initialize()

        Returns:
            Configured JobStore
        """
        if config is None:
            raise JobStoreConfigError("A StoreConfig is required")

        store = document_store or DocumentStoreClient(config)
        persistence = PersistenceAdapter(store, search_size=config.search_size)
        acquisition = AcquisitionEngine(persistence, order_by_priority=config.order_by_priority)
        firing = FiringProtocol(persistence, signaler=signaler)

        return cls(persistence=persistence, acquisition=acquisition, firing=firing, config=config)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self, signaler: Optional[SchedulerSignaler] = None) -> None:
        if signaler is not None:
            self.firing.set_signaler(signaler)

        if self.config is not None:
            logger.info(
                f"Initializing against '{self.config.host}:{self.config.port}' "
                f"using index name '{self.config.index_name}'"
            )
        self._initialized = True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def scheduler_started(self) -> None:
        pass

    def scheduler_paused(self) -> None:
        pass

    def scheduler_resumed(self) -> None:
        pass

    def shutdown(self) -> None:
        store = self.persistence.store
        if isinstance(store, DocumentStoreClient):
            store.close()
        self._initialized = False

    def supports_persistence(self) -> bool:
        return True

    def is_clustered(self) -> bool:
        return True

    def get_estimated_time_to_release_and_acquire_trigger(self) -> int:
        return ESTIMATED_RELEASE_AND_ACQUIRE_MILLIS

    # =========================================================================
    # Jobs
    # =========================================================================

    def store_job(self, job: JobDetail, replace_existing: bool = False) -> None:
        self.persistence.store_job(job, replace_existing=replace_existing)

    def store_job_and_trigger(self, job: JobDetail, trigger: Trigger) -> None:
        self.store_job(job, replace_existing=False)
        self.store_trigger(trigger, replace_existing=False)

    def store_jobs_and_triggers(
        self,
        triggers_and_jobs: Mapping[JobKey, tuple[JobDetail, Iterable[Trigger]]],
        replace: bool = False,
    ) -> None:
        for job, triggers in triggers_and_jobs.values():
            self.store_job(job, replace_existing=replace)
            for trigger in triggers:
                self.store_trigger(trigger, replace_existing=replace)

    def remove_job(self, key: JobKey) -> bool:
        return self.persistence.remove_job(key)

    def remove_jobs(self, keys: Iterable[JobKey]) -> bool:
        """Remove several jobs; True only if every one was removed."""
        results = [self.remove_job(key) for key in keys]
        return all(results)

    def retrieve_job(self, key: JobKey) -> Optional[JobDetail]:
        return self.persistence.retrieve_job(key)

    def check_job_exists(self, key: JobKey) -> bool:
        return self.persistence.job_exists(key)

    def get_number_of_jobs(self) -> int:
        return self.persistence.count_jobs()

    # =========================================================================
    # Triggers
    # =========================================================================

    def store_trigger(self, trigger: Trigger, replace_existing: bool = False) -> Trigger:
        return self.persistence.store_trigger(trigger, replace_existing=replace_existing)

    def remove_trigger(self, key: TriggerKey) -> bool:
        return self.persistence.remove_trigger(key)

    def remove_triggers(self, keys: Iterable[TriggerKey]) -> bool:
        """Remove several triggers; True only if every one was removed."""
        results = [self.remove_trigger(key) for key in keys]
        return all(results)

    def replace_trigger(self, key: TriggerKey, new_trigger: Trigger) -> bool:
        removed = self.remove_trigger(key)
        self.store_trigger(new_trigger, replace_existing=False)
        return removed

    def retrieve_trigger(self, key: TriggerKey) -> Optional[Trigger]:
        return self.persistence.retrieve_trigger(key)

    def check_trigger_exists(self, key: TriggerKey) -> bool:
        return self.persistence.trigger_exists(key)

    def get_number_of_triggers(self) -> int:
        return self.persistence.count_triggers()

    def get_triggers_for_job(self, job_key: JobKey) -> list[Trigger]:
        return self.persistence.find_triggers_for_job(job_key)

    def get_trigger_state(self, key: TriggerKey) -> Optional[TriggerState]:
        trigger = self.persistence.retrieve_trigger(key)
        return trigger.state if trigger else None

    # =========================================================================
    # Acquire / fire / complete
    # =========================================================================

    def acquire_next_triggers(self, no_later_than: int, max_count: int, time_window: int) -> list[Trigger]:
        return self.acquisition.acquire_next_triggers(no_later_than, max_count, time_window)

    def release_acquired_trigger(self, trigger: Trigger) -> bool:
        return self.acquisition.release_acquired_trigger(trigger)

    def release_trigger(self, key: TriggerKey) -> TransitionResult:
        """Operator release by key; the result tells why nothing was released."""
        return self.acquisition.release_trigger(key)

    def triggers_fired(self, triggers: list[Trigger]) -> list[FireResult]:
        return self.firing.triggers_fired(triggers)

    def triggered_job_complete(
        self,
        trigger: Trigger,
        job: JobDetail,
        instruction: CompletedExecutionInstruction,
    ) -> None:
        self.firing.triggered_job_complete(trigger, job, instruction)

    # =========================================================================
    # Accepted, not implemented: calendars, pause/resume, listings
    # =========================================================================

    def clear_all_scheduling_data(self) -> None:
        pass

    def store_calendar(self, name: str, calendar, replace_existing: bool = False, update_triggers: bool = False) -> None:
        pass

    def remove_calendar(self, name: str) -> bool:
        return False

    def retrieve_calendar(self, name: str):
        return None

    def get_number_of_calendars(self) -> int:
        return 0

    def get_calendar_names(self) -> list[str]:
        return []

    def get_job_keys(self, matcher=None) -> set[JobKey]:
        return set()

    def get_trigger_keys(self, matcher=None) -> set[TriggerKey]:
        return set()

    def get_job_group_names(self) -> list[str]:
        return []

    def get_trigger_group_names(self) -> list[str]:
        return []

    def get_paused_trigger_groups(self) -> set[str]:
        return set()

    def pause_trigger(self, key: TriggerKey) -> None:
        pass

    def pause_triggers(self, matcher=None) -> list[str]:
        return []

    def pause_job(self, key: JobKey) -> None:
        pass

    def pause_jobs(self, matcher=None) -> list[str]:
        return []

    def resume_trigger(self, key: TriggerKey) -> None:
        pass

    def resume_triggers(self, matcher=None) -> list[str]:
        return []

    def resume_job(self, key: JobKey) -> None:
        pass

    def resume_jobs(self, matcher=None) -> list[str]:
        return []

    def pause_all(self) -> None:
        pass

    def resume_all(self) -> None:
        pass

    def set_instance_id(self, instance_id: str) -> None:
        pass

    def set_instance_name(self, instance_name: str) -> None:
        pass

    def set_thread_pool_size(self, pool_size: int) -> None:
        pass
