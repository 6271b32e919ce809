"""Value types exchanged between clients, the poll driver and reconcilers.

- ``ResourceDetail``: one observation of a remote resource (a ``get`` result).
- ``ResourceState``: what the orchestrator persists for a resource instance.
- ``PollTiming``: timeout and interval of one kind's poll sessions.

Design notes:
- All models are frozen dataclasses.
- Durations carry their unit in the field name (``_s`` = seconds).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from mgc_provider.core.constants import IMPORT_ID_SEPARATOR
from mgc_provider.core.exceptions import ValidationError


class ModelValidationError(ValueError, ValidationError):
    """Raised when a model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_operation = "validate"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        ValidationError.__init__(self, f"{model}.{field_name}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class ResourceDetail:
    """A single observation of a remote resource.

    Attributes:
        id: Remote resource handle.
        status: Raw status string as reported by the backend.
        attributes: The full response body.
        error_message: Backend error text that accompanies an error
            status, verbatim ("" when the API exposes none).
    """

    id: str
    status: str
    attributes: dict[str, Any] = field(default_factory=dict)
    error_message: str = ""

    def get(self, key: str, default: Any = None) -> Any:
        """Return a top-level response attribute."""
        return self.attributes.get(key, default)


@dataclass(frozen=True, slots=True)
class ResourceState:
    """Persisted state of one resource instance.

    Attributes:
        kind: Registered resource type name.
        id: Remote resource handle.
        attributes: Attribute values to persist.
        parent_id: Handle of the owning resource for sub-resources
            (node pools, DBaaS snapshots, volume attachments), else "".
    """

    kind: str
    id: str
    attributes: dict[str, Any] = field(default_factory=dict)
    parent_id: str = ""

    @property
    def import_id(self) -> str:
        """Identifier that ``import_state`` accepts for this instance."""
        if self.parent_id:
            return f"{self.parent_id}{IMPORT_ID_SEPARATOR}{self.id}"
        return self.id

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict."""
        return {
            "kind": self.kind,
            "id": self.id,
            "parent_id": self.parent_id,
            "attributes": dict(self.attributes),
        }


@dataclass(frozen=True, slots=True)
class PollTiming:
    """Timeout and interval of a poll session.

    Attributes:
        timeout_s: Overall deadline measured from the start of the session.
        interval_s: Wait between two consecutive fetches.
    """

    timeout_s: float
    interval_s: float

    def __post_init__(self) -> None:
        if self.timeout_s <= 0:
            raise ModelValidationError("PollTiming", "timeout_s", self.timeout_s, "must be > 0")
        if self.interval_s < 0:
            raise ModelValidationError("PollTiming", "interval_s", self.interval_s, "must be >= 0")

    @classmethod
    def minutes(cls, timeout_min: float, interval_s: float) -> PollTiming:
        """Shorthand for the per-kind constants, which are stated in minutes."""
        return cls(timeout_s=timeout_min * 60.0, interval_s=interval_s)

    def override(self, *, timeout_s: float = 0.0, interval_s: float = 0.0) -> PollTiming:
        """Return a copy with every non-zero argument replacing its field."""
        return replace(
            self,
            timeout_s=timeout_s or self.timeout_s,
            interval_s=interval_s or self.interval_s,
        )
