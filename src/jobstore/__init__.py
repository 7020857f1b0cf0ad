"""
Clustered Job Store Module.

Persists jobs and triggers in a remote versioned document store and lets
several scheduler nodes acquire, fire and complete triggers against it,
using per-document version checks as the only coordination.
"""

from .entities import (
    DEFAULT_GROUP,
    DEFAULT_PRIORITY,
    REPEAT_INDEFINITELY,
    TriggerState,
    TriggerVariant,
    CompletedExecutionInstruction,
    JobKey,
    TriggerKey,
    JobDetail,
    SimpleSchedule,
    CronSchedule,
    Trigger,
    FireBundle,
    FireResult,
)
from .errors import (
    JobStoreError,
    JobPersistenceError,
    ObjectAlreadyExistsError,
    UnsupportedVariantError,
    CorruptRecordError,
    JobStoreConfigError,
    JobNotFoundError,
    TriggerNotFoundError,
    StaleTriggerError,
)
from .config import StoreConfig
from .document_store import DocumentStore, DocumentStoreClient
from .memory_store import InMemoryDocumentStore
from .persistence import PersistenceAdapter, TransitionOutcome, TransitionResult
from .acquisition import AcquisitionEngine
from .firing import FiringProtocol, SchedulerSignaler
from .job_store import JobStore

__all__ = [
    # Entities
    "DEFAULT_GROUP",
    "DEFAULT_PRIORITY",
    "REPEAT_INDEFINITELY",
    "TriggerState",
    "TriggerVariant",
    "CompletedExecutionInstruction",
    "JobKey",
    "TriggerKey",
    "JobDetail",
    "SimpleSchedule",
    "CronSchedule",
    "Trigger",
    "FireBundle",
    "FireResult",
    # Errors
    "JobStoreError",
    "JobPersistenceError",
    "ObjectAlreadyExistsError",
    "UnsupportedVariantError",
    "CorruptRecordError",
    "JobStoreConfigError",
    "JobNotFoundError",
    "TriggerNotFoundError",
    "StaleTriggerError",
    # Config
    "StoreConfig",
    # Document store
    "DocumentStore",
    "DocumentStoreClient",
    "InMemoryDocumentStore",
    # Persistence
    "PersistenceAdapter",
    "TransitionOutcome",
    "TransitionResult",
    # Acquisition
    "AcquisitionEngine",
    # Firing
    "FiringProtocol",
    "SchedulerSignaler",
    # Store
    "JobStore",
]
