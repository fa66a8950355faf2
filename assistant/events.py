import hashlib
import json
import os
from datetime import datetime, timezone

from assistant import config


def _hash_id(value: str) -> str:
    raw = f"{config.LOG_ID_SALT}{value}".encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def _log_event(event_type: str, payload: dict) -> None:
    try:
        path = config.EVENT_LOG_PATH
        dir_path = os.path.dirname(path)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)
        safe_payload = dict(payload or {})
        if safe_payload.get("session_id"):
            safe_payload["session_id"] = _hash_id(str(safe_payload["session_id"]))
        record = {
            "event_type": event_type,
            "ts": datetime.now(timezone.utc).isoformat(),
            **safe_payload,
        }
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=True) + "\n")
    except OSError:
        pass


def log_chat_event(event_type: str, payload: dict) -> None:
    _log_event(event_type, payload)


def log_llm_event(event_type: str, payload: dict) -> None:
    _log_event(event_type, payload)


def log_api_event(event_type: str, payload: dict) -> None:
    _log_event(event_type, payload)


def reset_event_log(reason: str) -> None:
    path = config.EVENT_LOG_PATH
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError:
        pass
    _log_event("event_log_reset", {"reason": reason})
