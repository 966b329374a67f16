"""
Catalog errors, shaped as RFC 9457 Problem Details.

https://tools.ietf.org/rfc/rfc9457.txt
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..schemas.common import Problem

PROBLEM_TYPE_BASE = "https://example.com/problems"


class ProblemDetailsException(Exception):
    """
    Base class for errors raised to catalog callers.

    The catalog has no HTTP layer; a consumer renders ``problem_details``
    with ``status_code`` as they are. Subclasses fix the status, title and
    problem type and pass problem-specific members as extensions.
    """

    status_code: int = 500
    title: str = "Internal Error"
    problem_type: str = "internal-error"

    def __init__(self, detail: Optional[str] = None, **extensions: Any):
        """
        Initialize Problem Details exception.

        Args:
            detail: Human-readable explanation specific to this occurrence
            extensions: Additional problem-specific members; None values are dropped
        """
        self.detail = detail
        self.extensions = {key: value for key, value in extensions.items() if value is not None}
        super().__init__(detail or self.title)

    @property
    def type_uri(self) -> str:
        return f"{PROBLEM_TYPE_BASE}/{self.problem_type}"

    @property
    def problem_details(self) -> Dict[str, Any]:
        """The Problem Details object, extensions included."""
        details: Dict[str, Any] = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
        }
        if self.detail:
            details["detail"] = self.detail
        details.update(self.extensions)
        return details

    def to_problem(self) -> Problem:
        """Standard Problem Details members as a schema; extensions other than violations are dropped."""
        return Problem.model_validate(self.problem_details)


class ValidationError(ProblemDetailsException):
    """A document broke one or more field rules; every violation is listed."""

    status_code = 400
    title = "Validation Error"
    problem_type = "validation-error"

    def __init__(
        self,
        violations: Optional[List[Dict[str, str]]] = None,
        detail: str = "The document failed validation",
    ):
        self.violations = violations or []
        super().__init__(detail, violations=self.violations or None)

    @property
    def fields(self) -> List[str]:
        """Names of the fields that failed validation, in reported order."""
        return [violation["path"] for violation in self.violations]

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        """
        Build a ValidationError listing every violation pydantic reported.

        Args:
            exc: Pydantic validation error

        Returns:
            ValidationError with one ``{"path", "message"}`` entry per violation
        """
        violations = []
        for error in exc.errors():
            path = ".".join(str(part) for part in error["loc"]) or "__root__"
            message = error["msg"]
            # Strip pydantic's prefix from messages raised by our own validators
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            violations.append({"path": path, "message": message})

        return cls(violations, detail=f"{len(violations)} field(s) failed validation")


class NotFoundError(ProblemDetailsException):
    """A tour, user or review does not exist, or is hidden from the caller."""

    status_code = 404
    title = "Resource Not Found"
    problem_type = "resource-not-found"

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        super().__init__(detail, resource_type=resource_type, resource_id=resource_id)


class ConflictError(ProblemDetailsException):
    """A write would duplicate a unique value, such as a tour name or slug."""

    status_code = 409
    title = "Resource Conflict"
    problem_type = "resource-conflict"

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(detail, conflicting_resource=conflicting_resource)
