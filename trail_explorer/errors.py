"""Exception hierarchy for Trail Explorer.

Dataset errors split by how far they propagate:
- DatasetLoadError reaches the session (fatal to data features, retryable)
- DatasetNotReadyError / DatasetQueryError stop at the repository boundary
  and become empty results

Map provider errors stop at the marker manager and become degraded rendering.
"""


class TrailExplorerError(Exception):
    """Base class for all Trail Explorer errors."""


class DatasetError(TrailExplorerError):
    """Base class for dataset handle errors."""


class DatasetLoadError(DatasetError):
    """Dataset file could not be fetched, opened, or validated."""


class DatasetNotReadyError(DatasetError):
    """Query issued before init() succeeded or after close()."""


class DatasetQueryError(DatasetError):
    """The embedded engine rejected or failed a query."""

    def __init__(self, message: str, sql: str, params: tuple = ()) -> None:
        super().__init__(message)
        self.sql = sql
        self.params = params


class InvalidTrailRowError(TrailExplorerError):
    """A dataset row cannot be mapped to a TrailRecord."""


class MapProviderError(TrailExplorerError):
    """The map provider failed to create or update map objects."""


class ClusteringUnavailableError(MapProviderError):
    """The optional clustering capability is not available."""
