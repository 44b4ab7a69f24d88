import json
import uuid
from .db import get_conn
from datetime import datetime, timezone

def log_payload(direction: str, payload: dict, request_id: str = None):
    # direction in {'in','out','event'}
    rec = {
        "log_id": str(uuid.uuid4()),
        "direction": direction,
        "request_id": request_id,
        "payload_json": json.dumps(payload, ensure_ascii=False, default=str),
        "created_at": datetime.now(timezone.utc).isoformat()
    }
    with get_conn() as conn:
        conn.execute(
            "INSERT INTO logs(log_id, direction, request_id, payload_json, created_at) VALUES(?,?,?,?,?)",
            (rec["log_id"], rec["direction"], rec["request_id"], rec["payload_json"], rec["created_at"])
        )

def log_event(name: str, data: dict, request_id: str = None):
    # domain events are recorded, not broadcast
    log_payload("event", {"event": name, **data}, request_id)
