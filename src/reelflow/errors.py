"""Exception hierarchy shared by adapters, processors and the job runner.

The runner decides retry behaviour from the exception class:

- ``ProviderNotConfiguredError`` and ``DataError`` are not retried; the job is
  dead-lettered on the first occurrence.
- ``ProviderError`` (and any exception not in this module) is transient and
  retried with backoff until the job runs out of attempts.
"""


class ReelflowError(Exception):
    """Base class for all reelflow errors."""


class ProviderNotConfiguredError(ReelflowError):
    """An external provider is missing credentials or is disabled."""

    retryable = False


class ProviderError(ReelflowError):
    """An external provider call failed (network, rate limit, 5xx)."""

    retryable = True


class AdapterTimeoutError(ProviderError):
    """An external adapter call exceeded its hard deadline."""


class DataError(ReelflowError):
    """Input or stored data is unusable; retrying will not help."""

    retryable = False


class EntityNotFoundError(DataError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class MalformedResponseError(DataError):
    """A provider returned content that could not be parsed."""


class InvalidTransitionError(DataError):
    """A status change is not allowed by the video state machine."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition: {current} -> {target}")


def is_retryable(exc: BaseException) -> bool:
    """Whether a failed job should be re-queued after this exception."""
    return getattr(exc, "retryable", True)
