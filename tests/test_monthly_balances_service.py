from __future__ import annotations

import unittest
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError

from carehours.models import BalanceStatus, MonthlyBalance
from carehours.services.monthly_balances import list_monthly_balances, upsert_monthly_balance

VALUES = {
    "assigned_hours": 20.0,
    "scheduled_hours": 16.0,
    "used_hours": 16.0,
    "remaining_hours": 4.0,
    "excess_hours": 0.0,
    "balance": 4.0,
    "status": BalanceStatus.DEFICIT,
    "percentage": 80.0,
    "message": "4.0h below the contracted hours",
    "planning": [],
    "holiday_info": {},
}


class _FakeScalars:
    def __init__(self, items: list[object]):
        self._items = items

    def all(self) -> list[object]:
        return list(self._items)


class _FakeDB:
    def __init__(self, scalar_results: list[object | None], *, commit_errors: list[Exception] | None = None):
        self._scalar_results = scalar_results
        self._commit_errors = commit_errors or []
        self.added: list[object] = []
        self.rollbacks = 0
        self.scalars_calls = 0

    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        if not self._scalar_results:
            return None
        return self._scalar_results.pop(0)

    def scalars(self, _statement):  # type: ignore[no-untyped-def]
        self.scalars_calls += 1
        return _FakeScalars([])

    def add(self, obj) -> None:  # type: ignore[no-untyped-def]
        self.added.append(obj)

    def commit(self) -> None:
        if self._commit_errors:
            raise self._commit_errors.pop(0)

    def rollback(self) -> None:
        self.rollbacks += 1

    def refresh(self, _obj) -> None:  # type: ignore[no-untyped-def]
        return None


class UpsertMonthlyBalanceTests(unittest.TestCase):
    def test_inserts_new_row(self) -> None:
        fake_db = _FakeDB([None])

        row = upsert_monthly_balance(fake_db, user_id=100, worker_id=1, month=2, year=2026, values=VALUES)  # type: ignore[arg-type]

        self.assertEqual(fake_db.added, [row])
        self.assertEqual((row.user_id, row.worker_id, row.month, row.year), (100, 1, 2, 2026))
        self.assertEqual(row.status, BalanceStatus.DEFICIT)
        self.assertEqual(row.remaining_hours, 4.0)

    def test_overwrites_existing_row(self) -> None:
        existing = MonthlyBalance(id=9, user_id=100, worker_id=1, month=2, year=2026, assigned_hours=10.0)
        fake_db = _FakeDB([existing])

        row = upsert_monthly_balance(fake_db, user_id=100, worker_id=1, month=2, year=2026, values=VALUES)  # type: ignore[arg-type]

        self.assertIs(row, existing)
        self.assertEqual(fake_db.added, [])
        self.assertEqual(row.assigned_hours, 20.0)

    def test_concurrent_insert_falls_back_to_update(self) -> None:
        winner = MonthlyBalance(id=11, user_id=100, worker_id=1, month=2, year=2026)
        conflict = IntegrityError("INSERT INTO monthly_balances", {}, Exception("duplicate key value"))
        fake_db = _FakeDB([None, winner], commit_errors=[conflict])

        with self.assertLogs("carehours.monthly_balances", level="INFO"):
            row = upsert_monthly_balance(fake_db, user_id=100, worker_id=1, month=2, year=2026, values=VALUES)  # type: ignore[arg-type]

        self.assertIs(row, winner)
        self.assertEqual(fake_db.rollbacks, 1)
        self.assertEqual(winner.used_hours, 16.0)


class ListMonthlyBalancesTests(unittest.TestCase):
    def test_worker_without_users_lists_nothing(self) -> None:
        fake_db = _FakeDB([])

        with patch(
            "carehours.services.monthly_balances.list_worker_active_assignments",
            return_value=[],
        ) as list_assignments:
            rows = list_monthly_balances(fake_db, worker_id=1, year=2026)  # type: ignore[arg-type]

        self.assertEqual(rows, [])
        list_assignments.assert_called_once_with(fake_db, 1)
        self.assertEqual(fake_db.scalars_calls, 0)


if __name__ == "__main__":
    unittest.main()
