"""
Trigger acquisition.

Search-then-claim, one candidate at a time:
1. Search the trigger collection for WAITING triggers due by
   no_later_than + time_window (the index may lag behind the documents)
2. Re-read each hit by key for its current state and version
3. Skip hits that vanished, are no longer WAITING, or are no longer due
4. Write ACQUIRED conditioned on the version just read; a lost version
   check forfeits the candidate for this call only
5. Stop once max_count triggers are held

Several scheduler nodes may run this concurrently against the same store.
The per-document version check is the only mutual exclusion.
"""

import logging

from .codec import to_epoch_millis
from .entities import Trigger, TriggerKey, TriggerState
from .errors import JobStoreError
from .persistence import PersistenceAdapter, TransitionOutcome, TransitionResult


logger = logging.getLogger(__name__)


class AcquisitionEngine:
    """Claims due triggers for the calling scheduler node."""

    def __init__(self, persistence: PersistenceAdapter, order_by_priority: bool = False):
        """
        Initialize AcquisitionEngine.

        Args:
            persistence: PersistenceAdapter for storage operations
            order_by_priority: Claim earliest-due, highest-priority hits first
                instead of in the order the store returns them
        """
        self.persistence = persistence
        self.order_by_priority = order_by_priority

    def acquire_next_triggers(
        self,
        no_later_than: int,
        max_count: int,
        time_window: int,
    ) -> list[Trigger]:
        """
        Acquire up to max_count triggers due by no_later_than + time_window.

        Args:
            no_later_than: Epoch milliseconds
            max_count: Upper bound on returned triggers
            time_window: Extra milliseconds of look-ahead

        Returns:
            Triggers now in ACQUIRED state (empty when nothing is due)

        Raises:
            JobPersistenceError: On transport failure
            UnsupportedVariantError, CorruptRecordError: On an undecodable
                candidate

            In every case triggers already claimed by this call are
            released first.
        """
        acquired: list[Trigger] = []
        if max_count <= 0:
            return acquired

        upper_bound = no_later_than + time_window
        hits = self.persistence.search_due_triggers(upper_bound)

        if self.order_by_priority:
            hits = sorted(
                hits,
                key=lambda hit: (
                    hit.source.get("nextFireTime", 0),
                    -hit.source.get("priority", 0),
                ),
            )

        def still_due(current: Trigger) -> bool:
            return to_epoch_millis(current.next_fire_time) <= upper_bound

        try:
            for hit in hits:
                key = self.persistence.trigger_key_for_hit(hit)
                result = self.persistence.transition_trigger(
                    key,
                    TriggerState.ACQUIRED,
                    expected_states={TriggerState.WAITING},
                    guard=still_due,
                )

                if result.outcome == TransitionOutcome.NOT_FOUND:
                    logger.warning(f"Trigger {key} was searched for, but not found when requesting it")
                    continue

                if result.outcome == TransitionOutcome.STALE_STATE:
                    logger.debug(f"Trigger {key} is not waiting")
                    continue

                if result.outcome == TransitionOutcome.VERSION_CONFLICT:
                    logger.debug(f"Trigger {key} was acquired by another node")
                    continue

                acquired.append(result.trigger)
                if len(acquired) >= max_count:
                    break

        except Exception:
            if acquired:
                logger.warning(
                    f"Acquisition aborted, releasing {len(acquired)} claimed trigger(s)"
                )
                for trigger in acquired:
                    self._release_quietly(trigger)
            raise

        logger.debug(f"Acquired {len(acquired)} trigger(s) of {len(hits)} candidate(s)")
        return acquired

    def release_acquired_trigger(self, trigger: Trigger) -> bool:
        """
        Return an ACQUIRED trigger to WAITING without firing it.

        Returns:
            True if the trigger was released, False if it was no longer ours
        """
        return self.release_trigger(trigger.key).applied

    def release_trigger(self, key: TriggerKey) -> TransitionResult:
        """
        Release by key and report how the attempt ended.

        On STALE_STATE the result carries the trigger as read during this
        attempt, so callers can report its actual state.
        """
        result = self.persistence.transition_trigger(
            key,
            TriggerState.WAITING,
            expected_states={TriggerState.ACQUIRED},
        )
        if result.applied:
            logger.debug(f"Released trigger {key}")
        else:
            logger.debug(f"Trigger {key} not released ({result.outcome.value})")
        return result

    def _release_quietly(self, trigger: Trigger) -> None:
        try:
            self.release_acquired_trigger(trigger)
        except JobStoreError as e:
            logger.error(f"Could not release trigger {trigger.key}: {e}")
