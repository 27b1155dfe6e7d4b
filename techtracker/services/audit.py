"""Field-level diffs and the human-readable text stored with each history entry."""

from __future__ import annotations

from typing import Mapping

# Attribute name -> label used in the details text. Order is the order changes
# are listed in.
TRACKED_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "name"),
    ("inventory_number", "inventory number"),
    ("category", "category"),
    ("location", "cabinet"),
    ("date_added", "date added"),
)


def snapshot(item: object) -> dict[str, str]:
    """Capture the tracked fields of an equipment row as plain strings."""

    return {field: _as_text(getattr(item, field, None)) for field, _ in TRACKED_FIELDS}


def _as_text(value: object) -> str:
    if value is None:
        return ""
    # ``date_added`` is already stored as YYYY-MM-DD text; anything with an
    # isoformat (a ``date``) is rendered the same way.
    isoformat = getattr(value, "isoformat", None)
    if callable(isoformat):
        return isoformat()
    return str(value)


def diff_tracked(before: Mapping[str, str], after: Mapping[str, str]) -> list[tuple[str, str, str]]:
    """Return ``(label, old, new)`` for each tracked field whose value changed."""

    changes = []
    for field, label in TRACKED_FIELDS:
        old = before.get(field, "")
        new = after.get(field, "")
        if old != new:
            changes.append((label, old, new))
    return changes


def describe_created(name: str, inventory_number: str) -> str:
    return f"Created new equipment unit: '{name}' (Inventory no.: {inventory_number})"


def describe_updated(changes: list[tuple[str, str, str]]) -> str:
    parts = [f'{label} from "{old}" to "{new}"' for label, old, new in changes]
    return "Updated: " + ", ".join(parts) + "."


def describe_deleted(name: str, inventory_number: str) -> str:
    return f"Deleted equipment unit: '{name}' (Inventory no.: {inventory_number})."
