from __future__ import annotations

import json
import threading
import unittest
from datetime import datetime, timezone
from pathlib import Path
from tempfile import TemporaryDirectory

from lib.cost import DEFAULT_RATES, Rates, estimate_cost, estimate_text_cost, estimate_tokens, rates_for
from memory.cost_ledger import JsonCostLedger, NullCostLedger
from schemas.settings import RateSettings


def _fixed_clock() -> datetime:
    return datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


class TestCostEstimator(unittest.TestCase):
    def test_token_estimate_rounds_up(self) -> None:
        self.assertEqual(estimate_tokens(""), 0)
        self.assertEqual(estimate_tokens("abcd"), 1)
        self.assertEqual(estimate_tokens("abcde"), 2)
        self.assertEqual(estimate_tokens("x" * 4000), 1000)

    def test_thousand_in_thousand_out_at_default_rates(self) -> None:
        self.assertEqual(estimate_cost(1000, 1000), 0.04)
        self.assertEqual(estimate_text_cost("a" * 4000, "b" * 4000), 0.04)

    def test_cost_is_rounded_to_four_places(self) -> None:
        self.assertEqual(estimate_cost(333, 0), 0.0033)
        self.assertEqual(estimate_cost(0, 1), 0.0)

    def test_negative_token_counts_never_produce_negative_cost(self) -> None:
        self.assertEqual(estimate_cost(-500, -1), 0.0)
        self.assertEqual(estimate_cost(-500, 1000), 0.03)

    def test_rates_lookup_falls_back_to_default_entry(self) -> None:
        table = {
            "default": {"input_per_1k": 0.02, "output_per_1k": 0.05},
            "cheap": RateSettings(input_per_1k=0.001, output_per_1k=0.002),
        }
        self.assertEqual(rates_for("unknown", table), Rates(0.02, 0.05))
        self.assertEqual(rates_for("cheap", table), Rates(0.001, 0.002))
        self.assertEqual(rates_for("anything", None), DEFAULT_RATES)
        self.assertEqual(estimate_cost(1000, 1000, rates_for("unknown", table)), 0.07)


class TestCostLedger(unittest.TestCase):
    def test_accumulates_daily_and_monthly_totals(self) -> None:
        with TemporaryDirectory() as td:
            ledger = JsonCostLedger(Path(td) / "ledger.json", clock=_fixed_clock)
            ledger.add(0.5)
            ledger.add(0.25)
            ledger.add(0)
            ledger.add(-1.0)

            self.assertAlmostEqual(ledger.daily_total("2026-03-14"), 0.75)
            self.assertAlmostEqual(ledger.monthly_total("2026-03"), 0.75)
            self.assertEqual(ledger.daily_total("2026-03-15"), 0.0)

    def test_corrupt_file_self_heals(self) -> None:
        with TemporaryDirectory() as td:
            path = Path(td) / "ledger.json"
            path.write_text("not json", encoding="utf-8")
            ledger = JsonCostLedger(path, clock=_fixed_clock)

            self.assertEqual(ledger.load(), {"daily": {}, "monthly": {}})
            ledger.add(0.1)
            data = json.loads(path.read_text(encoding="utf-8"))
            self.assertAlmostEqual(data["daily"]["2026-03-14"], 0.1)

    def test_concurrent_increments_are_not_lost(self) -> None:
        with TemporaryDirectory() as td:
            ledger = JsonCostLedger(Path(td) / "ledger.json", clock=_fixed_clock)
            threads = [threading.Thread(target=ledger.add, args=(0.01,)) for _ in range(20)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            self.assertAlmostEqual(ledger.monthly_total("2026-03"), 0.2, places=6)

    def test_null_ledger_accepts_anything(self) -> None:
        NullCostLedger().add(1.23)


if __name__ == "__main__":
    unittest.main()
