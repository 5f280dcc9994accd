"""
Sanitization of partial task/project updates

The document store rejects None at any depth, so every partial update is
cleaned here before it is written. Rules, in order:

1. None values are dropped.
2. `assigneeIds` (a list) drives the legacy `assigneeId`: the first valid id
   is mirrored into it, an empty list clears it with DELETE_FIELD and is
   itself persisted as [].
3. Other lists lose None/"" items; empty lists are dropped unless the field
   is in PRESERVE_EMPTY_LIST_FIELDS.
4. Nested mappings are stripped recursively and dropped when left empty.
5. Store sentinels (DELETE_FIELD, SERVER_TIMESTAMP) pass through untouched.
6. A final pass strips any None that is still present at any depth.
7. `updatedAt` is always set to the current canonical time.
"""
import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from app.infra.store import DELETE_FIELD, is_sentinel
from app.utils.datetime_helper import canonical_iso

logger = logging.getLogger(__name__)

ASSIGNEE_SET_FIELD = "assigneeIds"
LEGACY_ASSIGNEE_FIELD = "assigneeId"
UPDATED_AT_FIELD = "updatedAt"

# Empty means "cleared" for these, so [] must reach the store
PRESERVE_EMPTY_LIST_FIELDS = frozenset({"tags", "dependencies"})

# Optional references where "" means "not set"
EMPTY_STRING_OPTIONAL_FIELDS = frozenset({"projectId", "description", LEGACY_ASSIGNEE_FIELD})


def _clean_list(values) -> List[Any]:
    items = []
    for item in values:
        if item is None or item == "":
            continue
        cleaned = strip_absent(item)
        if cleaned is not None:
            items.append(cleaned)
    return items


def strip_absent(value: Any) -> Any:
    """
    Recursively remove None from a value

    Returns None when the value itself is absent or is a mapping that ends up
    empty. Lists are always kept (possibly empty).
    """
    if value is None:
        return None
    if is_sentinel(value) or isinstance(value, (datetime, date)):
        return value
    if isinstance(value, Mapping):
        cleaned = {}
        for key, item in value.items():
            stripped = strip_absent(item)
            if stripped is not None:
                cleaned[key] = stripped
        return cleaned or None
    if isinstance(value, (list, tuple)):
        return _clean_list(value)
    return value


def drop_absent(data: Mapping) -> Dict[str, Any]:
    """Copy of a new document's fields without None or empty-string values"""
    result = {}
    for key, value in data.items():
        if isinstance(value, str) and value == "":
            continue
        stripped = strip_absent(value)
        if stripped is not None:
            result[key] = stripped
    return result


def sanitize_update(updates: Mapping, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Clean a partial update so the store accepts it"""
    present = {key: value for key, value in updates.items() if value is not None}
    cleaned: Dict[str, Any] = {}

    assignees_handled = False
    assignee_ids = present.get(ASSIGNEE_SET_FIELD)
    if isinstance(assignee_ids, (list, tuple)):
        valid_ids = [a for a in assignee_ids if isinstance(a, str) and a.strip()]
        cleaned[ASSIGNEE_SET_FIELD] = valid_ids
        cleaned[LEGACY_ASSIGNEE_FIELD] = valid_ids[0] if valid_ids else DELETE_FIELD
        assignees_handled = True
        logger.debug(f"Assignees set to {valid_ids} (legacy assigneeId mirrored)")

    for key, value in present.items():
        if assignees_handled and key in (ASSIGNEE_SET_FIELD, LEGACY_ASSIGNEE_FIELD):
            continue
        if key == UPDATED_AT_FIELD:
            continue

        if is_sentinel(value):
            cleaned[key] = value
        elif isinstance(value, str) and value == "" and key in EMPTY_STRING_OPTIONAL_FIELDS:
            continue
        elif isinstance(value, (list, tuple)):
            items = _clean_list(value)
            if items or key in PRESERVE_EMPTY_LIST_FIELDS:
                cleaned[key] = items
        elif isinstance(value, Mapping):
            nested = strip_absent(value)
            if nested is not None:
                cleaned[key] = nested
        else:
            cleaned[key] = value

    final = strip_absent(cleaned) or {}
    if len(final) != len(cleaned):
        logger.warning(f"Final pass removed fields: {sorted(set(cleaned) - set(final))}")

    final[UPDATED_AT_FIELD] = canonical_iso(now)
    return final
