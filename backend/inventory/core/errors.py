"""Catalog error taxonomy.

Every error carries the HTTP status it maps to and a message that is safe to
show to the client. Handlers in ``inventory.main`` render them as
``{"message": ...}``.
"""


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Missing or malformed product field."""
    status_code = 400


class NotFoundError(CatalogError):
    """No product with the requested id."""
    status_code = 404


class ConflictError(CatalogError):
    """A unique value (the product code) is already taken."""
    status_code = 400


class StorageError(CatalogError):
    """Database or file system failure."""
    status_code = 500
