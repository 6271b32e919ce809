"""Pydantic models returned to the orchestrator by the provider facade.

- ``Diagnostic``: one operator-facing message (severity, summary, detail).
- ``OperationResult``: state to persist plus the diagnostics of one
  lifecycle call.

Both serialise to plain dicts (``to_dict``) so the orchestrator bridge can
hand them over as JSON.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from mgc_provider.models.resources import ResourceState

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"


class Diagnostic(BaseModel):
    """One message for the operator.

    Attributes:
        severity: ``"error"`` or ``"warning"``.
        summary: Short, stable description.
        detail: Full description including the backend text verbatim.
    """

    severity: Literal["error", "warning"] = SEVERITY_ERROR
    summary: str
    detail: str = ""

    model_config = {"frozen": True}


class OperationResult(BaseModel):
    """Outcome of one lifecycle call.

    Attributes:
        state: State to persist (``None`` when the resource is gone or no
            handle was ever obtained).
        diagnostics: Errors and warnings raised by the call.
    """

    state: Any = None
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @field_validator("state")
    @classmethod
    def check_state(cls, value: Any) -> ResourceState | None:
        if value is not None and not isinstance(value, ResourceState):
            msg = f"state must be a ResourceState, got {type(value).__name__}"
            raise ValueError(msg)
        return value

    @property
    def has_error(self) -> bool:
        """Return ``True`` if any diagnostic is an error."""
        return any(d.severity == SEVERITY_ERROR for d in self.diagnostics)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dict."""
        return {
            "state": self.state.to_dict() if self.state is not None else None,
            "diagnostics": [d.model_dump() for d in self.diagnostics],
        }
