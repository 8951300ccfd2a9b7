"""Infrastructure smoke tests: health endpoint, metrics JSONL, audit log."""
import json
import os
from pathlib import Path


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["status"] == "ok"
    assert data["version"] == "1.0.0"


def test_requests_are_recorded_as_metrics(client):
    client.get("/health")

    files = list((Path(os.environ["LOGS_DIR"]) / "metrics").glob("*/api.jsonl"))
    assert files, "No metrics file written"
    events = [json.loads(line) for f in files for line in f.read_text(encoding="utf-8").splitlines()]
    health = [e for e in events if e["kind"] == "health"]
    assert health, "Latency metric for /health missing"
    assert "latency_ms" in health[-1]
    assert health[-1]["fields"]["status"] == 200


def test_state_changes_write_audit_rows(client, location, db_session):
    from models import AuditLog

    owner, loc = location

    rows = db_session.query(AuditLog).filter(AuditLog.action == "location.create").all()
    assert len(rows) == 1
    assert rows[0].entity_id == loc["id"]
    assert rows[0].actor_id == owner["id"]
