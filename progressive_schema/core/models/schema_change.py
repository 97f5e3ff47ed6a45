"""
Models describing differences between schema generations (ephemeral).
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ChangeType = Literal["new_field", "removed_field", "type_change", "enum_change", "format_change"]
Severity = Literal["info", "warning", "error"]


class SchemaChange(BaseModel):
    """
    A single schema change.

    Attributes:
        type: new_field, removed_field, type_change, enum_change or format_change
        path: Field path the change applies to
        details: Free-form details, normally including a human-readable description
        severity: info, warning or error
        auto_approvable: Whether the change is safe to apply without review
    """

    type: ChangeType
    path: str
    details: dict[str, Any] = Field(default_factory=dict)
    severity: Severity = "info"
    auto_approvable: bool = True

    @property
    def description(self) -> str:
        return self.details.get("description") or f"{self.type} at {self.path}"


class SchemaComparison(BaseModel):
    """
    Outcome of comparing two schema documents.

    Attributes:
        changes: Detected changes in pass order
        is_breaking: Any change could invalidate existing consumers
        requires_approval: Any change has warning or error severity
        can_auto_approve: Every change is auto-approvable
    """

    changes: list[SchemaChange] = Field(default_factory=list)
    is_breaking: bool = False
    requires_approval: bool = False
    can_auto_approve: bool = True


class TransformSuggestion(BaseModel):
    """
    A suggested field rename between two schema generations.

    ``from`` is the field in the new schema and ``to`` the field it replaces in the
    previous schema, so applying the suggestion maps incoming data back onto the
    established field.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["rename"] = "rename"
    from_path: str = Field(..., alias="from")
    to_path: str = Field(..., alias="to")
    confidence: int = Field(..., ge=0, le=100)
    reason: str


class BatchResult(BaseModel):
    """Result of applying one batch of records to the builder state."""

    schema_changed: bool = False
    changes: list[SchemaChange] = Field(default_factory=list)
