"""Domain errors raised by the services and mapped to HTTP status codes by the API server."""


class EntityNotFoundError(Exception):
    """The entity (or its embedding) does not exist or is not visible to the caller. Maps to 404."""

    def __init__(self, entity_id: str, detail: str | None = None):
        self.entity_id = entity_id
        super().__init__(detail or f"Entity {entity_id} not found")


class AccessDeniedError(Exception):
    """The caller could not prove ownership of the entity. Maps to 403."""


class InvalidRequestError(ValueError):
    """The request is well formed but cannot be served, e.g. wrong vector dimensions. Maps to 400."""
