"""Collection error hierarchy.

Each error is contained at the smallest scope it affects: one instance
(QueryFailed), one entity type (EnumerationFailed, FetchFailed) or one
datacenter (CatalogUnavailable, PartitionNotFound).
"""


class CollectionError(Exception):
    """Base class for collection failures."""


class CatalogUnavailable(CollectionError):
    """Performance counter metadata could not be read from the target."""


class EnumerationFailed(CollectionError):
    """Listing instances of one entity type failed."""


class FetchFailed(CollectionError):
    """Batched summary retrieval for one entity type failed."""


class QueryFailed(CollectionError):
    """Performance query for one instance failed."""


class PartitionNotFound(CollectionError):
    """The datacenter selector did not resolve to any datacenter."""
