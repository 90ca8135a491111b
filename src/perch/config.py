"""Route data configuration.

DataConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.  Invalid values fail at construction.
"""

from dataclasses import dataclass

from perch.errors import ConfigurationError
from perch.http.response import LOCATION_HEADER, REDIRECT_STATUSES


@dataclass(frozen=True, slots=True)
class DataConfig:
    """Route data configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = DataConfig(redirect_statuses=frozenset({302, 303}))
    """

    # Redirect interception
    redirect_statuses: frozenset[int] = REDIRECT_STATUSES
    location_header: str = LOCATION_HEADER

    # Reconciliation of fetched values
    reconcile_key: str | None = "id"  # None = positional list matching only
    reconcile_merge: bool = False

    # Logging
    log_refetch_skips: bool = True  # debug record for refetches that did not match

    def __post_init__(self) -> None:
        bad = sorted(s for s in self.redirect_statuses if not 300 <= s <= 399)
        if bad:
            msg = f"redirect_statuses must be 3xx codes, got {bad}"
            raise ConfigurationError(msg)
        if not self.location_header:
            msg = "location_header must not be empty"
            raise ConfigurationError(msg)
