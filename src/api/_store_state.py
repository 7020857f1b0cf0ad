"""
Job store state management for API integration.

Provides singleton access to the JobStore instance.
Initialized during FastAPI lifespan.

Usage:
    from ._store_state import get_job_store, init_job_store

    # In lifespan:
    init_job_store()

    # In routers:
    store = get_job_store()
"""

from typing import Optional

from src.jobstore import DocumentStore, JobStore, StoreConfig


# Global job store instance
_job_store: Optional[JobStore] = None


def init_job_store(
    config: Optional[StoreConfig] = None,
    document_store: Optional[DocumentStore] = None,
) -> JobStore:
    """
    Initialize the job store singleton.

    Called during FastAPI lifespan startup. A store that is already
    initialized is returned unchanged.

    Args:
        config: Store configuration (default: StoreConfig.from_env())
        document_store: Override the HTTP client (tests use the in-memory store)

    Returns:
        Initialized JobStore

    Raises:
        JobStoreConfigError: If no config is given and the environment is incomplete
    """
    global _job_store

    if _job_store is not None:
        return _job_store

    store = JobStore.create(config or StoreConfig.from_env(), document_store=document_store)
    store.initialize()
    _job_store = store

    return _job_store


def get_job_store() -> JobStore:
    """
    Get the job store singleton.

    Raises:
        RuntimeError: If the job store is not initialized
    """
    if _job_store is None:
        raise RuntimeError(
            "Job store not initialized. "
            "Ensure init_job_store() is called during startup."
        )

    return _job_store


def shutdown_job_store() -> None:
    """Close the job store. Called during FastAPI lifespan shutdown."""
    global _job_store

    if _job_store is not None:
        _job_store.shutdown()
        _job_store = None
