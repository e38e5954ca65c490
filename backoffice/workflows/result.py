# backoffice/workflows/result.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class WorkflowResult(Generic[T]):
    """
    Uniform outcome of a workflow operation.

    Business-rule violations come back as success=False with readable errors;
    nothing is raised for them. `data` carries the touched entity when useful.
    """

    success: bool
    message: str = ""
    errors: list[str] = field(default_factory=list)
    data: Optional[T] = None

    @classmethod
    def ok(cls, message: str = "", data: Optional[T] = None) -> "WorkflowResult[T]":
        return cls(success=True, message=message, errors=[], data=data)

    @classmethod
    def fail(cls, *errors: str) -> "WorkflowResult[T]":
        errs = [e for e in errors if e]
        return cls(success=False, message=errs[0] if errs else "Workflow operation failed", errors=errs)

    def as_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, "errors": list(self.errors)}
