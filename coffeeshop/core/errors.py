"""Exceptions raised by the services and mapped to HTTP responses."""


class ShopError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ShopError):
    """Raised when a required field is missing or a value is out of range."""

    status_code = 400


class UnauthorizedError(ShopError):
    """Raised when credentials or a bearer token are missing or invalid."""

    status_code = 401


class ForbiddenError(ShopError):
    """Raised when the caller is authenticated but not allowed to act."""

    status_code = 403


class NotFoundError(ShopError):
    """Raised when an entity does not exist or is inactive."""

    status_code = 404

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id is None:
            super().__init__(f"{entity} not found")
        else:
            super().__init__(f"{entity} with ID {entity_id} not found")


class ConflictError(ShopError):
    """Raised on a duplicate unique key or an illegal state transition."""

    status_code = 409


class PersistenceError(ShopError):
    """Raised when the storage backend cannot be read or written."""

    status_code = 500
