"""Erasure service exceptions."""


class ErasureError(Exception):
    """Raised when an erasure fails outside the per-step loop."""
    pass


class OwnerNotFoundError(ErasureError):
    """Raised when no principal can be located for the given identifiers."""
    pass
