"""Lightweight metrics/audit helpers for API endpoints.

``record_metric`` writes compact JSONL events for quick local inspection;
``audit`` adds a row to the ``audit_log`` table inside the caller's session
so it commits (or rolls back) together with the change it describes.
"""
from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from sqlalchemy.orm import Session

from config import settings
from models import AuditLog

logger = logging.getLogger(__name__)


def _logs_dir() -> Path:
    """
    Get logs directory with date-based rotation.

    Returns:
        Path to logs/metrics/YYYY-MM-DD/
    """
    base = settings.LOGS_DIR
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    p = Path(base) / "metrics" / today
    p.mkdir(parents=True, exist_ok=True)
    return p


def record_metric(
    kind: str,
    fields: Dict[str, Any] | None = None,
    outcome: str | None = None,
    latency_ms: float | None = None,
) -> None:
    """Append a single metric event to logs/metrics/<date>/api.jsonl.

    Args:
        kind: Short event kind, e.g. "task.start", "http.request".
        fields: Arbitrary dict with event fields (ids, sizes, status...).
        outcome: Optional outcome: accepted|rejected.
        latency_ms: Request latency in milliseconds.
    """
    entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "kind": kind,
        "fields": fields or {},
    }
    if outcome:
        entry["outcome"] = outcome
    if latency_ms is not None:
        entry["latency_ms"] = latency_ms
    try:
        out = _logs_dir() / "api.jsonl"
        with out.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
    except OSError as exc:
        # Metrics are best-effort; a read-only disk must not fail the request
        logger.warning("metric %s not recorded: %s", kind, exc)


def audit(
    s: Session,
    action: str,
    entity: str | None,
    entity_id: int | None,
    actor_id: int | None = None,
    payload: dict | None = None,
) -> None:
    """Stage an audit_log row in session ``s`` (caller commits)."""
    ph = None
    if payload is not None:
        ph = hashlib.sha256(
            json.dumps(payload, ensure_ascii=False, sort_keys=True, default=str).encode("utf-8")
        ).hexdigest()
    s.add(AuditLog(
        action=action,
        entity=entity,
        entity_id=entity_id,
        actor_id=actor_id,
        payload_hash=ph,
    ))
    record_metric(f"action:{action}", {"entity": entity, "entity_id": entity_id, "actor_id": actor_id})
