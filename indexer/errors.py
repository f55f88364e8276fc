"""Exception taxonomy for event projection."""

from __future__ import annotations


class IndexingError(RuntimeError):
    """Event cannot be applied; the dispatcher rolls it back and moves on."""


class MissingReferenceError(IndexingError):
    """Event refers to an entity that has not been indexed."""


class MalformedEventError(IndexingError):
    """Event payload is missing parameters or has the wrong shape."""


class NotFoundOnMutationError(IndexingError):
    """Mutation targets a record that cannot be loaded."""


class LedgerInvariantError(IndexingError):
    """Applying the event would drive an exact amount below zero."""


class ViewCallReverted(RuntimeError):
    """On-chain read reverted or could not be performed."""
