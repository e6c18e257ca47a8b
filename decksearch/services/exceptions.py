"""Domain-specific exceptions."""


class ServiceError(Exception):
    pass


class CatalogError(ServiceError):
    """Card catalog request failed or returned an unusable payload."""


class TransientFetchError(ServiceError):
    """Predictive lookup failed; callers recover with empty suggestions."""


class CommitError(ServiceError):
    """Search execution failed and must be shown to the user."""
