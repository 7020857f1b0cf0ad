"""
Firing and completion protocol.

triggers_fired():
    ACQUIRED -> EXECUTING per trigger, version-checked, with the schedule
    advanced in the same write. Exactly one FireResult per input trigger,
    in input order; a failure only affects its own trigger.

triggered_job_complete():
    EXECUTING -> WAITING | COMPLETED | ERROR, or removal, according to the
    completion instruction. The job has already run, so failures here are
    logged and never raised.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from .entities import (
    CompletedExecutionInstruction,
    FireBundle,
    FireResult,
    JobDetail,
    Trigger,
    TriggerState,
    utc_now,
)
from .errors import (
    CorruptRecordError,
    JobNotFoundError,
    JobStoreError,
    StaleTriggerError,
    TriggerNotFoundError,
    UnsupportedVariantError,
)
from .persistence import PersistenceAdapter, TransitionOutcome
from .state_machine import completion_target, is_job_wide, is_terminal


logger = logging.getLogger(__name__)


_NON_TERMINAL_STATES = {state for state in TriggerState if not is_terminal(state)}


class SchedulerSignaler(Protocol):
    """Callback into the scheduler core."""

    def signal_scheduling_change(self, candidate_new_next_fire_time: Optional[datetime]) -> None:
        """Ask the scheduler to re-evaluate what it is waiting for."""
        ...


class FiringProtocol:
    """Fires acquired triggers and records job completion."""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        signaler: Optional[SchedulerSignaler] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize FiringProtocol.

        Args:
            persistence: PersistenceAdapter for storage operations
            signaler: Scheduler core callback (may be set later)
            clock: Source of the fire time stamped on bundles
        """
        self.persistence = persistence
        self.signaler = signaler
        self.clock = clock

    def set_signaler(self, signaler: Optional[SchedulerSignaler]) -> None:
        self.signaler = signaler

    # =========================================================================
    # Firing
    # =========================================================================

    def triggers_fired(self, triggers: list[Trigger]) -> list[FireResult]:
        """
        Mark acquired triggers as executing and build their fire bundles.

        Returns:
            One FireResult per input trigger, in input order
        """
        results: list[FireResult] = []

        for trigger in triggers:
            logger.debug(f"Firing trigger {trigger.key}")
            try:
                results.append(self._fire(trigger))
            except (UnsupportedVariantError, CorruptRecordError) as e:
                logger.error(f"Trigger {trigger.key} cannot be fired: {e}")
                results.append(FireResult(error=e))
            except JobStoreError as e:
                logger.warning(f"Error when firing trigger {trigger.key}: {e}")
                results.append(FireResult(error=e))

        return results

    def _fire(self, trigger: Trigger) -> FireResult:
        job = self.persistence.retrieve_job(trigger.job_key)
        if job is None:
            logger.warning(
                f"Job {trigger.job_key} referenced by trigger {trigger.key} not found, "
                f"moving trigger to {TriggerState.ERROR.value}"
            )
            self.persistence.transition_trigger(
                trigger.key,
                TriggerState.ERROR,
                expected_states={TriggerState.ACQUIRED},
            )
            return FireResult(error=JobNotFoundError(trigger.job_key))

        fire_time = self.clock()

        def advance(current: Trigger) -> Trigger:
            current.triggered()
            return current

        result = self.persistence.transition_trigger(
            trigger.key,
            TriggerState.EXECUTING,
            expected_states={TriggerState.ACQUIRED},
            update=advance,
        )

        if result.outcome == TransitionOutcome.NOT_FOUND:
            logger.warning(f"Trigger {trigger.key} was requested, but not found when requesting it")
            return FireResult(error=TriggerNotFoundError(trigger.key))

        if result.outcome == TransitionOutcome.STALE_STATE:
            logger.debug(f"Trigger {trigger.key} is not acquired")
            return FireResult(
                error=StaleTriggerError(
                    trigger.key, TriggerState.ACQUIRED.value, result.trigger.state.value
                )
            )

        if result.outcome == TransitionOutcome.VERSION_CONFLICT:
            logger.debug(f"Trigger {trigger.key} was modified while firing")
            return FireResult(
                error=StaleTriggerError(
                    trigger.key, TriggerState.ACQUIRED.value, "modified concurrently"
                )
            )

        fired = result.trigger
        before = result.previous
        bundle = FireBundle(
            job=job,
            trigger=fired,
            fire_time=fire_time,
            scheduled_fire_time=before.next_fire_time,
            previous_fire_time=before.previous_fire_time,
            next_fire_time=fired.next_fire_time,
        )
        return FireResult(bundle=bundle)

    # =========================================================================
    # Completion
    # =========================================================================

    def triggered_job_complete(
        self,
        trigger: Trigger,
        job: JobDetail,
        instruction: CompletedExecutionInstruction,
    ) -> None:
        """
        Persist the outcome of a job run.

        The scheduler core is signalled afterwards, except when the trigger
        was removed and has no further fire time.
        """
        logger.debug(f"Job {job.key} completed and was triggered by {trigger.key}")

        try:
            signal = True

            if instruction == CompletedExecutionInstruction.DELETE_TRIGGER:
                removed = self.persistence.remove_trigger(trigger.key)
                if removed and not trigger.may_fire_again():
                    signal = False
            else:
                target = completion_target(instruction)
                self._complete_trigger(trigger, target)

                if is_job_wide(instruction):
                    for sibling in self.persistence.find_triggers_for_job(job.key):
                        if sibling.key != trigger.key:
                            self._set_sibling_state(sibling, target)

            if signal and self.signaler is not None:
                self.signaler.signal_scheduling_change(None)

        except Exception as e:
            logger.error(
                f"Exception occurred when handling completed job {job.key}: {e}",
                exc_info=True,
            )

    def _complete_trigger(self, trigger: Trigger, target: TriggerState) -> None:
        # Persist the caller's copy: it carries the schedule advanced at fire time.
        result = self.persistence.transition_trigger(
            trigger.key,
            target,
            expected_states={TriggerState.EXECUTING},
            update=lambda _current: trigger.copy(),
        )
        self._log_completion(trigger, target, result.outcome)

    def _set_sibling_state(self, sibling: Trigger, target: TriggerState) -> None:
        result = self.persistence.transition_trigger(
            sibling.key,
            target,
            expected_states=_NON_TERMINAL_STATES,
        )
        self._log_completion(sibling, target, result.outcome)

    @staticmethod
    def _log_completion(trigger: Trigger, target: TriggerState, outcome: TransitionOutcome) -> None:
        if outcome == TransitionOutcome.APPLIED:
            logger.debug(f"Successfully updated trigger {trigger.key} to {target.value}")
        elif outcome == TransitionOutcome.NOT_FOUND:
            logger.warning(f"Trigger {trigger.key} was requested, but not found when requesting it")
        else:
            logger.warning(
                f"Trigger {trigger.key} not moved to {target.value}: {outcome.value}"
            )
