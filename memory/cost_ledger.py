from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Protocol

DEFAULT_LEDGER_PATH = Path("memory/cost_ledger.json")


class CostLedger(Protocol):
    def add(self, amount: float) -> None: ...


class NullCostLedger:
    def add(self, amount: float) -> None:
        return None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JsonCostLedger:
    """
    Running daily/monthly spend totals persisted as one small JSON file:

        {"daily": {"2026-10-19": 0.12}, "monthly": {"2026-10": 3.4}}

    Increments are serialised with a lock so concurrent requests in one process
    never lose an update. A corrupt or unreadable file is reset to empty totals.
    """

    def __init__(self, path: Path = DEFAULT_LEDGER_PATH, *, clock: Callable[[], datetime] = _utc_now) -> None:
        self.path = Path(path)
        self._clock = clock
        self._lock = threading.Lock()
        self._ensure_file_exists()

    def _empty(self) -> Dict[str, Dict[str, float]]:
        return {"daily": {}, "monthly": {}}

    def _ensure_file_exists(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._save(self._empty())

    def _save(self, data: Dict[str, Dict[str, float]]) -> None:
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")

    def load(self) -> Dict[str, Dict[str, float]]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if isinstance(data, dict) and isinstance(data.get("daily"), dict) and isinstance(data.get("monthly"), dict):
                return data
        except (OSError, ValueError):
            pass

        # Self-heal if corrupted
        data = self._empty()
        self._save(data)
        return data

    def add(self, amount: float) -> None:
        amount = float(amount or 0.0)
        if amount <= 0:
            return

        now = self._clock()
        day = now.strftime("%Y-%m-%d")
        month = now.strftime("%Y-%m")

        with self._lock:
            data = self.load()
            data["daily"][day] = round(float(data["daily"].get(day, 0.0)) + amount, 6)
            data["monthly"][month] = round(float(data["monthly"].get(month, 0.0)) + amount, 6)
            self._save(data)

    def daily_total(self, day: str) -> float:
        return float(self.load()["daily"].get(day, 0.0))

    def monthly_total(self, month: str) -> float:
        return float(self.load()["monthly"].get(month, 0.0))
