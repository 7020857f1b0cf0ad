"""
Persistence Adapter for the Job Store.

Maps jobs and triggers onto the document store's `job` and `trigger`
collections (document id "{group}.{name}") and provides the single
primitive every state change goes through:

    transition_trigger(): read current version and state, validate the
    expected source state, write the new state conditioned on that version.

Does NOT contain scheduling logic and never retries a lost race.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from .codec import decode_job, decode_trigger, encode_job, encode_trigger
from .config import DEFAULT_SEARCH_SIZE
from .document_store import DocumentStore, SearchHit
from .entities import JobDetail, JobKey, Trigger, TriggerKey, TriggerState
from .errors import ObjectAlreadyExistsError
from .state_machine import can_transition


logger = logging.getLogger(__name__)


JOB_COLLECTION = "job"
TRIGGER_COLLECTION = "trigger"


class TransitionOutcome(str, Enum):
    """How a version-checked state change ended."""

    APPLIED = "APPLIED"
    NOT_FOUND = "NOT_FOUND"
    STALE_STATE = "STALE_STATE"
    VERSION_CONFLICT = "VERSION_CONFLICT"


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of transition_trigger().

    trigger is the written snapshot when APPLIED, otherwise the snapshot
    that was read (None when NOT_FOUND). previous is the snapshot read
    before the write.
    """

    outcome: TransitionOutcome
    trigger: Optional[Trigger] = None
    previous: Optional[Trigger] = None

    @property
    def applied(self) -> bool:
        return self.outcome == TransitionOutcome.APPLIED


class PersistenceAdapter:
    """
    Document-store-backed persistence for jobs and triggers.

    - Jobs are written unconditionally or create-only
    - Trigger state changes are always version-checked
    """

    def __init__(self, store: DocumentStore, search_size: int = DEFAULT_SEARCH_SIZE):
        """
        Initialize persistence adapter.

        Args:
            store: DocumentStore implementation (HTTP client or in-memory)
            search_size: Maximum hits requested per trigger search
        """
        self.store = store
        self.search_size = search_size

    # =========================================================================
    # Jobs
    # =========================================================================

    def store_job(self, job: JobDetail, replace_existing: bool = False) -> JobDetail:
        """
        Persist a job definition.

        Raises:
            ObjectAlreadyExistsError: If replace_existing is False and the key is taken
            JobPersistenceError: On transport failure
        """
        result = self.store.put(
            JOB_COLLECTION,
            str(job.key),
            encode_job(job),
            create_only=not replace_existing,
        )
        if not result.ok:
            raise ObjectAlreadyExistsError(job.key)

        logger.info(f"Successfully stored job '{job.key}'")
        return job

    def retrieve_job(self, key: JobKey) -> Optional[JobDetail]:
        result = self.store.get(JOB_COLLECTION, str(key))
        if not result.found:
            logger.debug(f"Did not find any jobs with the key {key}")
            return None
        return decode_job(result.source)

    def remove_job(self, key: JobKey) -> bool:
        if self.store.delete(JOB_COLLECTION, str(key)):
            logger.debug(f"Successfully removed job {key}")
            return True
        logger.warning(f"Job {key} was not found when attempting to remove it")
        return False

    def job_exists(self, key: JobKey) -> bool:
        return self.store.get(JOB_COLLECTION, str(key)).found

    def count_jobs(self) -> int:
        return self.store.count(JOB_COLLECTION)

    # =========================================================================
    # Triggers
    # =========================================================================

    def store_trigger(self, trigger: Trigger, replace_existing: bool = False) -> Trigger:
        """
        Persist a trigger in WAITING state.

        Returns:
            Copy of the trigger carrying its new state and version

        Raises:
            ObjectAlreadyExistsError: If replace_existing is False and the key is taken
            UnsupportedVariantError: If the schedule type cannot be encoded
            JobPersistenceError: On transport failure
        """
        result = self.store.put(
            TRIGGER_COLLECTION,
            str(trigger.key),
            encode_trigger(trigger, state=TriggerState.WAITING),
            create_only=not replace_existing,
        )
        if not result.ok:
            raise ObjectAlreadyExistsError(trigger.key)

        stored = trigger.copy()
        stored.state = TriggerState.WAITING
        stored.version = result.version

        logger.info(f"Successfully stored trigger '{trigger.key}'")
        return stored

    def retrieve_trigger(self, key: TriggerKey) -> Optional[Trigger]:
        result = self.store.get(TRIGGER_COLLECTION, str(key))
        if not result.found:
            return None
        return decode_trigger(result.source, version=result.version)

    def remove_trigger(self, key: TriggerKey) -> bool:
        if self.store.delete(TRIGGER_COLLECTION, str(key)):
            logger.debug(f"Successfully removed trigger {key}")
            return True
        logger.warning(f"Trigger {key} was not found when attempting to remove it")
        return False

    def trigger_exists(self, key: TriggerKey) -> bool:
        return self.store.get(TRIGGER_COLLECTION, str(key)).found

    def count_triggers(self) -> int:
        return self.store.count(TRIGGER_COLLECTION)

    def search_due_triggers(self, upper_bound: int) -> list[SearchHit]:
        """
        Search WAITING triggers with 0 <= nextFireTime <= upper_bound.

        Hits come from the search index and may be stale; callers must
        re-read each one before acting on it.
        """
        query = {
            "filter": {
                "and": [
                    {"term": {"state": TriggerState.WAITING.value}},
                    {"range": {"nextFireTime": {"gte": 0, "lte": upper_bound}}},
                ]
            }
        }
        return self.store.search(TRIGGER_COLLECTION, query, size=self.search_size)

    def find_triggers_for_job(self, job_key: JobKey) -> list[Trigger]:
        """Triggers referencing a job, decoded from (possibly stale) search hits."""
        query = {
            "filter": {
                "and": [
                    {"term": {"jobName": job_key.name}},
                    {"term": {"jobGroup": job_key.group}},
                ]
            }
        }
        hits = self.store.search(TRIGGER_COLLECTION, query, size=self.search_size)
        return [decode_trigger(hit.source) for hit in hits]

    def transition_trigger(
        self,
        key: TriggerKey,
        new_state: TriggerState,
        expected_states: Optional[Iterable[TriggerState]] = None,
        update: Optional[Callable[[Trigger], Trigger]] = None,
        guard: Optional[Callable[[Trigger], bool]] = None,
    ) -> TransitionResult:
        """
        Move a trigger to new_state with a version-checked write.

        Args:
            key: Trigger to transition
            new_state: Target state
            expected_states: Acceptable source states; defaults to every
                state the lifecycle allows into new_state
            update: Builds the record to write from a copy of the freshly
                read trigger (e.g. to advance its schedule)
            guard: Extra predicate on the freshly read trigger; False is
                treated like a stale state

        Returns:
            TransitionResult; a lost race is VERSION_CONFLICT, never an exception
        """
        doc_id = str(key)
        result = self.store.get(TRIGGER_COLLECTION, doc_id)
        if not result.found:
            return TransitionResult(TransitionOutcome.NOT_FOUND)

        current = decode_trigger(result.source, version=result.version)

        if expected_states is None:
            allowed = {state for state in TriggerState if can_transition(state, new_state)}
        else:
            allowed = set(expected_states)

        if current.state not in allowed:
            logger.debug(
                f"Trigger {key} is {current.state.value}, "
                f"expected one of {sorted(s.value for s in allowed)}"
            )
            return TransitionResult(TransitionOutcome.STALE_STATE, trigger=current, previous=current)

        if guard is not None and not guard(current):
            logger.debug(f"Trigger {key} no longer qualifies for {new_state.value}")
            return TransitionResult(TransitionOutcome.STALE_STATE, trigger=current, previous=current)

        replacement = update(current.copy()) if update else current.copy()
        put = self.store.put(
            TRIGGER_COLLECTION,
            doc_id,
            encode_trigger(replacement, state=new_state),
            expected_version=result.version,
        )
        if not put.ok:
            logger.debug(f"Lost version check on trigger {key} (version {result.version})")
            return TransitionResult(TransitionOutcome.VERSION_CONFLICT, trigger=current, previous=current)

        replacement.state = new_state
        replacement.version = put.version
        return TransitionResult(TransitionOutcome.APPLIED, trigger=replacement, previous=current)

    def trigger_key_for_hit(self, hit: SearchHit) -> TriggerKey:
        # The document id, not the indexed copy, addresses the re-read
        return TriggerKey.from_doc_id(hit.id)
