import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


def utc_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass
class RunLogger:
    """
    Append-only JSONL run logger.

    Each call writes one JSON object per line to log_path. `subject_id` is the
    section id or blueprint id the run is about; a logger can be shared across
    requests by passing `subject_id` per call.
    """
    run_id: str
    log_path: Path
    subject_id: str = ""
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _write(self, payload: dict[str, Any]) -> None:
        line = json.dumps(payload, ensure_ascii=False, default=str) + "\n"
        with self._lock:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(line)

    def _event(self, step: str, event: str, status: str, subject_id: Optional[str], **fields: Any) -> None:
        self._write({
            "ts": utc_iso(),
            "run_id": self.run_id,
            "subject_id": subject_id if subject_id is not None else self.subject_id,
            "step": step,
            "event": event,
            "status": status,
            **fields,
        })

    def start(self, step: str, input: Any, *, subject_id: Optional[str] = None) -> None:
        self._event(step, "start", "ok", subject_id, input=input)

    def end(
        self,
        step: str,
        output: Any,
        metrics: Optional[dict[str, Any]] = None,
        *,
        subject_id: Optional[str] = None,
    ) -> None:
        self._event(step, "end", "ok", subject_id, output=output, metrics=metrics or {})

    def error(self, step: str, input: Any, err: Exception, *, subject_id: Optional[str] = None) -> None:
        self._event(
            step,
            "error",
            "error",
            subject_id,
            input=input,
            error={"type": err.__class__.__name__, "message": str(err)},
        )

    def fallback(self, step: str, reason: str, *, to: str, subject_id: Optional[str] = None) -> None:
        self._event(step, "fallback", "degraded", subject_id, reason=reason, fallback_to=to)
