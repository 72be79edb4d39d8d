class MultiResourceError(Exception):
    """Base error for all user-facing multi-resource exceptions."""


class ConfigurationError(MultiResourceError):
    """Raised when configuration is invalid or incomplete."""


class ProjectNotInitializedError(MultiResourceError):
    """Raised when the .mres data directory or database is missing."""


class InvalidIdError(MultiResourceError):
    """Raised when a zero (or negative) id is supplied where a real id is required."""


class AlreadyExistsError(MultiResourceError):
    """Raised when a resource or token id is registered twice."""


class NotFoundError(MultiResourceError):
    """Raised when a resource or token lookup misses."""


class AlreadyAttachedError(MultiResourceError):
    """Raised when a resource is already pending or active on a token."""


class CapacityExceededError(MultiResourceError):
    """Raised when a token's pending sequence is full."""


class IndexOutOfRangeError(MultiResourceError):
    """Raised when a position-based access goes beyond the current length."""


class NotAuthorizedError(MultiResourceError):
    """Raised when the caller lacks owner, delegate or issuer standing."""


class LengthMismatchError(MultiResourceError):
    """Raised when a priority list does not match the active sequence length."""


class SelfApprovalError(MultiResourceError):
    """Raised when an owner tries to approve itself."""
