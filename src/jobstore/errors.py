"""
Job store exceptions.

Taxonomy:
- JobPersistenceError: transport failures and unexpected store responses
- ObjectAlreadyExistsError: create of a job/trigger whose key is taken
- UnsupportedVariantError: unknown trigger discriminator (schema skew)
- CorruptRecordError: a stored record that cannot be decoded
- JobStoreConfigError: invalid store configuration

Stale versions are NOT exceptions; see persistence.TransitionOutcome.
JobNotFoundError, TriggerNotFoundError and StaleTriggerError are carried
inside failed FireResults rather than raised.
"""


class JobStoreError(Exception):
    """Base exception for all job store errors."""
    pass


class JobPersistenceError(JobStoreError):
    """
    Raised when the document store cannot be reached or answers with an
    unexpected status.

    No retry happens inside the job store; retry policy belongs to the caller.
    """
    pass


class ObjectAlreadyExistsError(JobPersistenceError):
    """Raised when a create-only write finds an existing document."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Unable to store {key}: an object with this key already exists")


class UnsupportedVariantError(JobStoreError):
    """
    Raised when a trigger record carries an unknown variant tag.

    Fatal. Indicates version skew or corruption, never a transient condition.
    """

    def __init__(self, tag):
        self.tag = tag
        super().__init__(f"Trigger variant '{tag}' cannot be matched to an actual trigger")


class CorruptRecordError(JobStoreError):
    """Raised when a stored record is missing fields or holds invalid values."""

    def __init__(self, doc_id, reason):
        self.doc_id = doc_id
        super().__init__(f"Record {doc_id} cannot be decoded: {reason}")


class JobStoreConfigError(JobStoreError):
    """Raised when the store configuration is missing or invalid."""
    pass


class JobNotFoundError(JobStoreError):
    """A trigger references a job that is not in the store."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Job not found: {key}")


class TriggerNotFoundError(JobStoreError):
    """A trigger vanished between being handed out and being read back."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Trigger not found: {key}")


class StaleTriggerError(JobStoreError):
    """
    A trigger was not in the expected state, or another node won the
    version check.
    """

    def __init__(self, key, expected_state: str, actual_state: str):
        self.key = key
        self.expected_state = expected_state
        self.actual_state = actual_state
        super().__init__(
            f"Stale trigger {key}: "
            f"expected state '{expected_state}', got '{actual_state}'"
        )
