"""Exception hierarchy for the relationship graph core."""


class RelGraphError(Exception):
    """Base class for all relgraph errors."""


class StoreError(RelGraphError):
    """A primary or mirror store call failed."""


class TransientStoreError(StoreError):
    """Network, timeout or rate-limit failure; the call may succeed later."""


class SnapshotLoadError(RelGraphError):
    """The in-memory graph snapshot could not be loaded from the store."""
