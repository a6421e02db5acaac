"""
Purpose: Error types shared by matching and the job lifecycle.

Business outcomes (no eligible contractor, at capacity, job taken) are not
errors; they are reported as outcome enums on result objects.
"""


class MatchConfigError(ValueError):
    """Raised for invalid match options, e.g. an unknown priority."""
    pass


class ConcurrencyConflict(Exception):
    """
    Raised by a DispatchStore when a compare-and-swap loses the race
    (the stored version moved since it was read). The dispatcher retries.
    """
    pass
