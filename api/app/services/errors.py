class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryConflictError(RepositoryError):
    """Raised when an insert collides with an existing entity."""


class RepositoryValidationError(RepositoryError):
    """Raised when query input fails validation before reaching the database."""


class InvalidSortColumnError(RepositoryValidationError):
    """Raised when a sort column is unknown to the schema or not sortable."""


class InvalidSortOrderError(RepositoryValidationError):
    """Raised when a sort direction is neither asc nor desc."""


class InvalidPageError(RepositoryValidationError):
    """Raised when page or limit would push the offset past a bigint."""
