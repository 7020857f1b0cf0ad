"""
Wire codec for jobs and triggers.

Trigger records are flat JSON objects with a `triggerClass` discriminator.
Common fields are shared by every variant; variant fields are added by the
encoder registered for that tag and read back by the matching decoder.

Times travel as epoch milliseconds. 0 means "unset" and decodes to None,
which makes the epoch instant itself unrepresentable.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from .entities import (
    DEFAULT_PRIORITY,
    CronSchedule,
    JobDetail,
    JobKey,
    Schedule,
    SimpleSchedule,
    Trigger,
    TriggerKey,
    TriggerState,
    TriggerVariant,
)
from .errors import CorruptRecordError, UnsupportedVariantError


logger = logging.getLogger(__name__)


UNSET_TIME = 0

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MILLI = timedelta(milliseconds=1)


def to_epoch_millis(value: Optional[datetime]) -> int:
    """Encode a datetime as epoch milliseconds, None as the 0 sentinel."""
    if value is None:
        return UNSET_TIME
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MILLI


def from_epoch_millis(value: Optional[int]) -> Optional[datetime]:
    """Decode epoch milliseconds; the 0 sentinel (or absence) becomes None."""
    if not value or value <= UNSET_TIME:
        return None
    return _EPOCH + timedelta(milliseconds=int(value))


# =============================================================================
# Jobs
# =============================================================================


def encode_job(job: JobDetail) -> dict:
    """Encode a job definition as a wire record."""
    return {
        "name": job.key.name,
        "group": job.key.group,
        "jobClass": job.job_class,
        "dataMap": dict(job.data_map),
    }


def decode_job(record: dict) -> JobDetail:
    """Decode a job wire record."""
    try:
        return JobDetail(
            key=JobKey(record["name"], record["group"]),
            job_class=record.get("jobClass", ""),
            data_map=dict(record.get("dataMap") or {}),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise CorruptRecordError(f"{record.get('group')}.{record.get('name')}", repr(e)) from e


# =============================================================================
# Trigger variants
# =============================================================================


def _encode_simple(schedule: SimpleSchedule) -> dict:
    return {
        "repeatCount": schedule.repeat_count,
        "repeatInterval": schedule.repeat_interval,
        "timesTriggered": schedule.times_triggered,
    }


def _decode_simple(record: dict) -> SimpleSchedule:
    return SimpleSchedule(
        repeat_count=int(record.get("repeatCount", 0)),
        repeat_interval=int(record.get("repeatInterval", 0)),
        times_triggered=int(record.get("timesTriggered", 0)),
    )


def _encode_cron(schedule: CronSchedule) -> dict:
    return {"cronExpression": schedule.cron_expression}


def _decode_cron(record: dict) -> CronSchedule:
    schedule = CronSchedule(cron_expression=record.get("cronExpression") or "")
    if not schedule.is_valid():
        # Kept as-is; the trigger simply never fires again.
        logger.error(f"Could not parse cron expression '{schedule.cron_expression}'")
    return schedule


_VARIANT_ENCODERS: dict[TriggerVariant, Callable[[Any], dict]] = {
    TriggerVariant.SIMPLE: _encode_simple,
    TriggerVariant.CRON: _encode_cron,
}

_VARIANT_DECODERS: dict[TriggerVariant, Callable[[dict], Schedule]] = {
    TriggerVariant.SIMPLE: _decode_simple,
    TriggerVariant.CRON: _decode_cron,
}


# =============================================================================
# Triggers
# =============================================================================


def encode_trigger(trigger: Trigger, state: Optional[TriggerState] = None) -> dict:
    """
    Encode a trigger as a wire record.

    Args:
        trigger: Trigger to encode
        state: State to persist; defaults to the trigger's own state

    Raises:
        UnsupportedVariantError: If the schedule type has no encoder
    """
    variant = getattr(trigger.schedule, "variant", None)
    encoder = _VARIANT_ENCODERS.get(variant)
    if encoder is None:
        raise UnsupportedVariantError(type(trigger.schedule).__name__)

    record = {
        "name": trigger.key.name,
        "group": trigger.key.group,
        "triggerClass": variant.value,
        "jobName": trigger.job_key.name,
        "jobGroup": trigger.job_key.group,
        "state": (state or trigger.state).value,
        "startTime": to_epoch_millis(trigger.start_time),
        "endTime": to_epoch_millis(trigger.end_time),
        "nextFireTime": to_epoch_millis(trigger.next_fire_time),
        "previousFireTime": to_epoch_millis(trigger.previous_fire_time),
        "priority": trigger.priority,
    }
    record.update(encoder(trigger.schedule))
    return record


def decode_trigger(record: dict, version: Optional[int] = None) -> Trigger:
    """
    Decode a trigger wire record.

    Args:
        record: Wire record
        version: Store version token to attach, if known

    Raises:
        UnsupportedVariantError: If triggerClass is unknown
        CorruptRecordError: If a required field is missing or malformed
    """
    tag = record.get("triggerClass")
    try:
        variant = TriggerVariant(tag)
    except ValueError:
        raise UnsupportedVariantError(tag) from None

    try:
        return Trigger(
            key=trigger_key_of(record),
            job_key=JobKey(record["jobName"], record["jobGroup"]),
            schedule=_VARIANT_DECODERS[variant](record),
            state=TriggerState(record.get("state", TriggerState.WAITING.value)),
            start_time=from_epoch_millis(record.get("startTime")),
            end_time=from_epoch_millis(record.get("endTime")),
            next_fire_time=from_epoch_millis(record.get("nextFireTime")),
            previous_fire_time=from_epoch_millis(record.get("previousFireTime")),
            priority=int(record.get("priority", DEFAULT_PRIORITY)),
            version=version,
        )
    except (KeyError, TypeError, ValueError) as e:
        doc_id = f"{record.get('group')}.{record.get('name')}"
        raise CorruptRecordError(doc_id, repr(e)) from e


def trigger_key_of(record: dict) -> TriggerKey:
    """Read the trigger key from a wire record without decoding the rest."""
    return TriggerKey(record["name"], record["group"])
