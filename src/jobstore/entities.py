"""
Job Store Domain Entities.

- JobKey / TriggerKey: (name, group) identity, rendered as "{group}.{name}"
- JobDetail: inert job definition (class reference + data map)
- Trigger: schedule bound to a job, with lifecycle state and version token
- SimpleSchedule / CronSchedule: the trigger variants (tagged union)
- FireBundle / FireResult: outcome of firing a single trigger

All datetimes are timezone-aware UTC, truncated to millisecond precision
so they survive the epoch-millisecond wire format unchanged.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import ClassVar, Optional, Union

from croniter import croniter


logger = logging.getLogger(__name__)


DEFAULT_GROUP = "DEFAULT"
DEFAULT_PRIORITY = 5
REPEAT_INDEFINITELY = -1


class TriggerState(str, Enum):
    """
    Persisted trigger lifecycle states.

    WAITING -> ACQUIRED -> EXECUTING -> WAITING | COMPLETED | ERROR
    """

    WAITING = "WAITING"
    ACQUIRED = "ACQUIRED"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class CompletedExecutionInstruction(str, Enum):
    """Instruction passed by the scheduler core after a job has run."""

    NOOP = "NOOP"
    DELETE_TRIGGER = "DELETE_TRIGGER"
    SET_TRIGGER_COMPLETE = "SET_TRIGGER_COMPLETE"
    SET_TRIGGER_ERROR = "SET_TRIGGER_ERROR"
    SET_ALL_JOB_TRIGGERS_COMPLETE = "SET_ALL_JOB_TRIGGERS_COMPLETE"
    SET_ALL_JOB_TRIGGERS_ERROR = "SET_ALL_JOB_TRIGGERS_ERROR"


class TriggerVariant(str, Enum):
    """Wire discriminator for trigger schedules."""

    SIMPLE = "SIMPLE"
    CRON = "CRON"


def utc_now() -> datetime:
    """Get current UTC time with millisecond precision."""
    return truncate_to_millis(datetime.now(timezone.utc))


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision."""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


@dataclass(frozen=True)
class JobKey:
    """Unique identity of a job."""

    name: str
    group: str = DEFAULT_GROUP

    def __str__(self) -> str:
        return f"{self.group}.{self.name}"


@dataclass(frozen=True)
class TriggerKey:
    """Unique identity of a trigger."""

    name: str
    group: str = DEFAULT_GROUP

    def __str__(self) -> str:
        return f"{self.group}.{self.name}"

    @classmethod
    def from_doc_id(cls, doc_id: str) -> "TriggerKey":
        """
        Key for a document id of the form "{group}.{name}".

        A dotted group makes the split ambiguous, but str() of the result
        always reproduces doc_id, so the key addresses the same document.
        """
        group, _, name = doc_id.partition(".")
        return cls(name, group)


@dataclass
class JobDetail:
    """
    Job definition.

    job_class is an opaque dotted reference resolved by the scheduler core;
    the store never imports it.
    """

    key: JobKey
    job_class: str
    data_map: dict = field(default_factory=dict)


@dataclass
class SimpleSchedule:
    """Fire at start_time, then every repeat_interval milliseconds."""

    variant: ClassVar[TriggerVariant] = TriggerVariant.SIMPLE

    repeat_count: int = 0
    repeat_interval: int = 0
    times_triggered: int = 0

    def first_fire_time(self, trigger: "Trigger") -> Optional[datetime]:
        return trigger.start_time

    def fire_time_after(self, trigger: "Trigger", after: datetime) -> Optional[datetime]:
        if (
            self.repeat_count != REPEAT_INDEFINITELY
            and self.times_triggered > self.repeat_count
        ):
            return None

        start = trigger.start_time
        if start is None:
            return None

        if self.repeat_count == 0 and after >= start:
            return None

        end = trigger.end_time
        if end is not None and end <= after:
            return None

        if after < start:
            return start

        if self.repeat_interval <= 0:
            return None

        interval = timedelta(milliseconds=self.repeat_interval)
        fires = (after - start) // interval + 1
        if self.repeat_count != REPEAT_INDEFINITELY and fires > self.repeat_count:
            return None

        fire_time = start + fires * interval
        if end is not None and end <= fire_time:
            return None

        return fire_time

    def on_triggered(self) -> None:
        self.times_triggered += 1


@dataclass
class CronSchedule:
    """Fire on every match of a cron expression (croniter syntax)."""

    variant: ClassVar[TriggerVariant] = TriggerVariant.CRON

    cron_expression: str = ""

    def is_valid(self) -> bool:
        return bool(self.cron_expression) and croniter.is_valid(self.cron_expression)

    def first_fire_time(self, trigger: "Trigger") -> Optional[datetime]:
        start = trigger.start_time or utc_now()
        return self.fire_time_after(trigger, start - timedelta(seconds=1))

    def fire_time_after(self, trigger: "Trigger", after: datetime) -> Optional[datetime]:
        if not self.is_valid():
            logger.error(f"Could not parse cron expression '{self.cron_expression}'")
            return None

        if trigger.start_time is not None and after < trigger.start_time:
            after = trigger.start_time - timedelta(seconds=1)

        fire_time = croniter(self.cron_expression, after).get_next(datetime)

        if trigger.end_time is not None and fire_time > trigger.end_time:
            return None

        return fire_time

    def on_triggered(self) -> None:
        pass


Schedule = Union[SimpleSchedule, CronSchedule]


@dataclass
class Trigger:
    """
    A schedule bound to a job.

    version is the store-assigned optimistic concurrency token. It is
    never interpreted, only carried from a read to the next conditional
    write, and does not take part in equality.
    """

    key: TriggerKey
    job_key: JobKey
    schedule: Schedule
    state: TriggerState = TriggerState.WAITING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    next_fire_time: Optional[datetime] = None
    previous_fire_time: Optional[datetime] = None
    priority: int = DEFAULT_PRIORITY
    version: Optional[int] = field(default=None, compare=False)

    @classmethod
    def create(
        cls,
        name: str,
        job_key: JobKey,
        schedule: Schedule,
        group: str = DEFAULT_GROUP,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        priority: int = DEFAULT_PRIORITY,
    ) -> "Trigger":
        """Create a WAITING trigger with its first fire time computed."""
        trigger = cls(
            key=TriggerKey(name, group),
            job_key=job_key,
            schedule=schedule,
            start_time=truncate_to_millis(start_time) if start_time else utc_now(),
            end_time=truncate_to_millis(end_time) if end_time else None,
            priority=priority,
        )
        trigger.next_fire_time = trigger.compute_first_fire_time()
        return trigger

    @property
    def variant(self) -> TriggerVariant:
        return self.schedule.variant

    def compute_first_fire_time(self) -> Optional[datetime]:
        fire_time = self.schedule.first_fire_time(self)
        return truncate_to_millis(fire_time) if fire_time else None

    def get_fire_time_after(self, after: Optional[datetime] = None) -> Optional[datetime]:
        fire_time = self.schedule.fire_time_after(self, after or utc_now())
        return truncate_to_millis(fire_time) if fire_time else None

    def triggered(self) -> None:
        """Advance the schedule past the fire time that was just used."""
        self.schedule.on_triggered()
        self.previous_fire_time = self.next_fire_time
        self.next_fire_time = self.get_fire_time_after(self.next_fire_time)

    def may_fire_again(self) -> bool:
        return self.next_fire_time is not None

    def copy(self) -> "Trigger":
        """Independent copy, including the mutable schedule."""
        return replace(self, schedule=replace(self.schedule))


@dataclass
class FireBundle:
    """Everything the scheduler core needs to run a fired trigger's job."""

    job: JobDetail
    trigger: Trigger
    fire_time: datetime
    scheduled_fire_time: Optional[datetime]
    previous_fire_time: Optional[datetime]
    next_fire_time: Optional[datetime]
    recovering: bool = False


@dataclass
class FireResult:
    """One per trigger passed to triggers_fired, in input order."""

    bundle: Optional[FireBundle] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.bundle is not None
