"""Batch events and their NDJSON encoding.

A batch stream is one ``start``, then ``item`` events numbered from 1, then
exactly one ``complete`` or ``error``.
"""

import json
from typing import Any, Dict, Optional

START = "start"
ITEM = "item"
COMPLETE = "complete"
ERROR = "error"


def start_event(tenant_id: str, total: int) -> Dict[str, Any]:
    return {"type": START, "tenantId": tenant_id, "total": total}


def item_event(
    index: int,
    success: bool,
    result: Optional[Dict[str, Any]] = None,
    error: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    event: Dict[str, Any] = {"type": ITEM, "index": index, "success": success}
    if result is not None:
        event["result"] = result
    if error is not None:
        event["error"] = error
    return event


def complete_event(
    total: int,
    processed: int,
    successful: int,
    failed: int,
    matched_existing: int,
    newly_created: int,
    cancelled: bool = False,
) -> Dict[str, Any]:
    return {
        "type": COMPLETE,
        "total": total,
        "processed": processed,
        "successful": successful,
        "failed": failed,
        "matchedExisting": matched_existing,
        "newlyCreated": newly_created,
        "cancelled": cancelled,
    }


def error_event(error: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": ERROR, "error": error}


def to_ndjson(event: Dict[str, Any]) -> str:
    """One event per line; dates and other non-JSON values become strings."""
    return json.dumps(event, default=str, ensure_ascii=False)
