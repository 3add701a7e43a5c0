from __future__ import annotations

import os
import tempfile
import unittest
from datetime import date
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Session

from carehours.db import Base
from carehours.models import Assignment, AssignmentStatus, AssignmentType, Holiday, User, Worker
from carehours.services import balance_reports
from carehours.services.balance_reports import load_worker_report
from carehours.services.schedules import DEFAULT_FESTIVE_KEY_POLICY

MONDAY_MORNINGS = {"monday": {"enabled": True, "timeSlots": [{"start": "09:00", "end": "13:00"}]}}


@compiles(JSONB, "sqlite")
def _compile_jsonb_for_sqlite(_type, _compiler, **_kw):  # type: ignore[no-untyped-def]
    return "JSON"


class WorkerReportSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.engine = create_engine(f"sqlite:///{os.path.join(self._tmpdir.name, 'carehours.sqlite3')}")
        Base.metadata.create_all(
            self.engine,
            tables=[Worker.__table__, User.__table__, Assignment.__table__, Holiday.__table__],
        )
        with Session(self.engine) as seed:
            seed.add_all(
                [
                    Worker(id=1, name="Maria", surname="Lopez", email="maria@example.com", is_active=True),
                    User(id=100, name="Ana", monthly_hours=20, is_active=True),
                    User(id=200, name="Pere", monthly_hours=16, is_active=True),
                ]
            )
            seed.flush()
            seed.add_all(
                [
                    Assignment(
                        id=1,
                        worker_id=1,
                        user_id=100,
                        assignment_type=AssignmentType.LABORABLES,
                        status=AssignmentStatus.ACTIVE,
                        schedule=MONDAY_MORNINGS,
                    ),
                    Assignment(
                        id=2,
                        worker_id=1,
                        user_id=200,
                        assignment_type=AssignmentType.LABORABLES,
                        status=AssignmentStatus.ACTIVE,
                        schedule=MONDAY_MORNINGS,
                    ),
                ]
            )
            seed.commit()
        self.db = Session(self.engine, expire_on_commit=False)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()
        self._tmpdir.cleanup()

    def test_failed_user_read_does_not_abort_later_users(self) -> None:
        real_loader = balance_reports.list_user_active_assignments

        def _drop_connection_for_first_user(db: Session, user_id: int) -> list[Assignment]:
            if user_id == 100:
                db.connection().invalidate()
            return real_loader(db, user_id)

        worker = self.db.get(Worker, 1)
        assert worker is not None

        with (
            patch(
                "carehours.services.balance_reports.list_user_active_assignments",
                side_effect=_drop_connection_for_first_user,
            ),
            self.assertLogs("carehours.balance_reports", level="WARNING") as captured,
        ):
            report = load_worker_report(
                self.db,
                worker=worker,
                year=2026,
                month=2,
                today=date(2026, 2, 28),
                policy=DEFAULT_FESTIVE_KEY_POLICY,
            )

        self.assertTrue(any("user_balance_skipped" in line for line in captured.output))
        self.assertEqual(report.skipped_user_ids, [100])
        self.assertEqual([item.entity_id for item in report.user_balances], [200])
        self.assertEqual(report.user_balances[0].assigned_hours, 16.0)
        self.assertEqual(report.total_monthly_hours, 16.0)
        self.assertEqual(report.worker_name, "Maria Lopez")


if __name__ == "__main__":
    unittest.main()
