"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Milestone", resource_id=ms_id)
    raise ValidationError("item_type is invalid", details={"item_type": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Maps to HTTP 404. Also used for soft-deleted rows: a deleted plan item
    or milestone is indistinguishable from a missing one.

    Args:
        resource: Human-readable model/entity name (e.g. "PlanItem", "Milestone").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        project_id: Optional scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        project_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.project_id = project_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if project_id is not None:
            msg += f" (project={project_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    The data was well-formed but violated a rule (unknown item type,
    parent in another project, progress outside 0-100).

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation conflicts with the current state of a resource.

    Maps to HTTP 409. Used for duplicate codes and for edits refused
    because a milestone baseline is locked.

    Args:
        resource: Model name.
        field: The field whose state conflicts.
        value: The conflicting value.
        message: Optional override of the generated message.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = message or f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class PlanStoreError(Exception):
    """Raised when the plan/tracker store fails a read or a write.

    Wraps the underlying SQLAlchemy error (available as ``__cause__``).
    Reads that fail abort the whole operation; a failed tracker insert
    during commit is caught by the orchestrator and reported per entity.

    Maps to HTTP 500.
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")
