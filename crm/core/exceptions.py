"""
Platform-wide exception hierarchy.

Services raise these types; the application factory registers one handler
per type so every blueprint gets the same HTTP status codes.

Usage:
    from crm.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Deal", resource_id="deal_3")
    raise ValidationError("Unknown data source", details={"mode": "..."})
"""


class NotFoundError(Exception):
    """Raised when a record id is not present in the current collection.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Task", "Contact").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown (field name → problem).
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class EntityMappingError(ValidationError):
    """Raised when a row cannot be mapped onto an entity record.

    Covers both backend responses with missing/invalid columns and client
    payloads carrying unknown enum values.
    """

    def __init__(self, entity: str, details: dict) -> None:
        self.entity = entity
        fields = ", ".join(sorted(details))
        super().__init__(f"Invalid {entity} record ({fields})", details=details)


class RemoteBackendError(Exception):
    """Raised when a live-mode mutation fails against the remote backend.

    The in-memory collections are left untouched when this is raised.
    Maps to HTTP 502.

    Args:
        operation: "insert" | "update" | "delete" | "select".
        table: Remote table name.
        reason: Error text reported by the gateway.
    """

    def __init__(self, operation: str, table: str, reason: str | None = None) -> None:
        self.operation = operation
        self.table = table
        self.reason = reason
        msg = f"Remote {operation} on '{table}' failed"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
