"""
Exception hierarchy for the scoring and forecasting core.

Invalid sessions are NOT errors: they are reported through ValidityResult.
These exceptions cover malformed inputs and unsatisfiable configuration.
"""


class SartCoreError(Exception):
    """Base class for every error raised by sart_core."""


class ProtocolError(SartCoreError, ValueError):
    """A trial protocol configuration that cannot be satisfied."""


class InputValidationError(SartCoreError, ValueError):
    """Input data failed validation before any computation ran."""


class TrialValidationError(InputValidationError):
    """A trial list does not match the protocol it claims to follow."""


class MetricsValidationError(InputValidationError):
    """RawMetrics with rates outside [0, 1] or non-finite timings."""


class HistoryValidationError(InputValidationError):
    """A session record from storage could not be interpreted."""


class StorageUnavailableError(SartCoreError):
    """The session store could not be read."""
