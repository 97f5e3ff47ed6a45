"""
Structural comparison of two schema generations.

Only top-level properties and the top-level required list are compared.
Changes are classified into breaking / approval-requiring / auto-approvable.
"""

from typing import Any

from progressive_schema.core.models import SchemaChange, SchemaComparison


def _resolve_type(prop: Any) -> str:
    """
    Comparable type label for a property schema.

    List types drop "null" and are sorted and joined with " | "; oneOf/anyOf
    resolve to "union" and a bare enum to "enum".
    """
    if not isinstance(prop, dict):
        return "unknown"

    prop_type = prop.get("type")
    if prop_type:
        if isinstance(prop_type, list):
            return " | ".join(sorted({str(t) for t in prop_type if t != "null"}))
        if isinstance(prop_type, dict):
            return str(sorted(prop_type.items()))
        return str(prop_type)

    if prop.get("oneOf") or prop.get("anyOf"):
        return "union"
    if prop.get("enum"):
        return "enum"
    return "unknown"


def _enum_difference(old_values: list[Any], new_values: list[Any]) -> tuple[list[Any], list[Any]]:
    added = [value for value in new_values if value not in old_values]
    removed = [value for value in old_values if value not in new_values]
    return added, removed


def compare_schemas(previous: dict[str, Any], current: dict[str, Any]) -> SchemaComparison:
    """
    Compare two schema documents and classify every difference.

    Args:
        previous: Earlier schema document
        current: Newer schema document

    Returns:
        SchemaComparison with changes in pass order (removed, added,
        type/enum, required-set)
    """
    old_props = previous.get("properties") or {}
    new_props = current.get("properties") or {}
    old_required = previous.get("required") or []
    new_required = current.get("required") or []

    changes: list[SchemaChange] = []
    is_breaking = False

    # Removed fields
    for field in old_props:
        if field not in new_props:
            changes.append(SchemaChange(
                type="removed_field",
                path=field,
                details={"description": f"Field '{field}' was removed"},
                severity="error",
                auto_approvable=False,
            ))
            is_breaking = True

    # Added fields; a required addition only breaks an established schema
    for field in new_props:
        if field in old_props:
            continue
        is_required = field in new_required
        breaking = is_required and len(old_props) > 0
        changes.append(SchemaChange(
            type="new_field",
            path=field,
            details={
                "description": f"Field '{field}' was added{' (required)' if is_required else ''}",
                "required": is_required,
            },
            severity="error" if breaking else "info",
            auto_approvable=not breaking,
        ))
        is_breaking = is_breaking or breaking

    # Type and enum changes
    for field, old_prop in old_props.items():
        if field not in new_props:
            continue
        new_prop = new_props[field]
        old_type = _resolve_type(old_prop)
        new_type = _resolve_type(new_prop)

        if old_type != new_type:
            changes.append(SchemaChange(
                type="type_change",
                path=field,
                details={
                    "description": f"Field '{field}' type changed from {old_type} to {new_type}",
                    "old_type": old_type,
                    "new_type": new_type,
                },
                severity="error",
                auto_approvable=False,
            ))
            is_breaking = True
            continue

        old_enum = old_prop.get("enum") if isinstance(old_prop, dict) else None
        new_enum = new_prop.get("enum") if isinstance(new_prop, dict) else None
        if not old_enum or not new_enum:
            continue

        added, removed = _enum_difference(old_enum, new_enum)
        if added or removed:
            changes.append(SchemaChange(
                type="enum_change",
                path=field,
                details={
                    "description": f"Enum values changed for '{field}'",
                    "added": added,
                    "removed": removed,
                },
                severity="warning" if removed else "info",
                auto_approvable=not removed,
            ))
            is_breaking = is_breaking or bool(removed)

    # Required-set changes for fields present in both generations
    for field in new_required:
        if field not in old_required and field in old_props and field in new_props:
            changes.append(SchemaChange(
                type="format_change",
                path=field,
                details={"description": f"Field '{field}' became required"},
                severity="error",
                auto_approvable=False,
            ))
            is_breaking = True

    for field in old_required:
        if field not in new_required and field in old_props and field in new_props:
            changes.append(SchemaChange(
                type="format_change",
                path=field,
                details={"description": f"Field '{field}' became optional"},
                severity="info",
                auto_approvable=True,
            ))

    return SchemaComparison(
        changes=changes,
        is_breaking=is_breaking,
        requires_approval=any(change.severity in ("warning", "error") for change in changes),
        can_auto_approve=all(change.auto_approvable for change in changes),
    )


def generate_change_summary(comparison: SchemaComparison) -> str:
    """Render a comparison as a human-readable multi-line report."""
    if not comparison.changes:
        return "No schema changes detected"

    def yes_no(flag: bool) -> str:
        return "Yes" if flag else "No"

    lines = [
        "Schema Changes Summary:",
        f"- Total changes: {len(comparison.changes)}",
        f"- Breaking changes: {yes_no(comparison.is_breaking)}",
        f"- Requires approval: {yes_no(comparison.requires_approval)}",
        f"- Can auto-approve: {yes_no(comparison.can_auto_approve)}",
    ]

    breaking = [change for change in comparison.changes if change.severity == "error"]
    if breaking:
        lines.extend(["", "Breaking Changes:"])
        lines.extend(f"  - {change.description}" for change in breaking)

    non_breaking = [change for change in comparison.changes if change.severity != "error"]
    if non_breaking:
        lines.extend(["", "Non-Breaking Changes:"])
        lines.extend(f"  - {change.description}" for change in non_breaking)

    return "\n".join(lines)
