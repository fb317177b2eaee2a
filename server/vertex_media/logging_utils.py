import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _dumps(record: dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=True, separators=(",", ":"), default=str)


def append_ndjson(path: Path, record: dict[str, Any]) -> None:
    """Append one JSON object as a single line.

    Never raises: logging must not break the request path.
    """

    try:
        ensure_dir(path.parent)
        line = _dumps(record)
        with path.open("a", encoding="utf-8") as f:
            f.write(line)
            f.write("\n")
    except Exception:
        return


def emit_stderr(record: dict[str, Any]) -> None:
    """Echo a record to stderr, where the hosting platform collects logs."""
    try:
        print(_dumps(record), file=sys.stderr, flush=True)
    except Exception:
        return


def new_request_record(request_id: str, event: str, model_id: str) -> dict[str, Any]:
    return {
        "ts": utc_now_iso(),
        "request_id": request_id,
        "event": event,
        "model_id": model_id,
    }


def record_error(log_record: dict[str, Any], stage: str, **fields: Any) -> None:
    log_record["error"] = {"stage": stage, **fields}
    log_record["status"] = "error"


def flush_request_log(
    path: Path,
    log_record: dict[str, Any],
    started_at: float | None = None,
    echo: bool = False,
) -> None:
    """Persist the request record; failures also go to stderr."""
    if started_at is not None:
        log_record["latency_ms"] = int((time.perf_counter() - started_at) * 1000)
    log_record.setdefault("status", "ok")
    append_ndjson(path, log_record)
    if log_record["status"] != "ok" or echo:
        emit_stderr(log_record)
