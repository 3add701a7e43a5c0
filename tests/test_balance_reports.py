from __future__ import annotations

from datetime import date
import unittest

from sqlalchemy.exc import OperationalError

from carehours.models import Assignment, AssignmentStatus, AssignmentType, BalanceStatus, User, Worker
from carehours.schemas import PlanningDay
from carehours.services.balance_reports import (
    build_planning_balance,
    build_user_report,
    build_worker_report,
    pair_planning,
)
from carehours.services.schedules import DEFAULT_FESTIVE_KEY_POLICY

MONDAY_MORNINGS = {"monday": {"enabled": True, "timeSlots": [{"start": "09:00", "end": "13:00"}]}}
TUESDAY_HOUR = {"tuesday": {"enabled": True, "timeSlots": ["10:00-11:00"]}}


def _worker(worker_id: int, name: str) -> Worker:
    return Worker(id=worker_id, name=name, surname="Test", email=f"{name.lower()}@example.com", is_active=True)


def _user(user_id: int, name: str, monthly_hours: float) -> User:
    return User(id=user_id, name=name, surname="Doe", monthly_hours=monthly_hours, is_active=True)


def _assignment(assignment_id: int, worker: Worker, user: User, schedule: dict) -> Assignment:
    assignment = Assignment(
        id=assignment_id,
        worker_id=worker.id,
        user_id=user.id,
        assignment_type=AssignmentType.LABORABLES,
        status=AssignmentStatus.ACTIVE,
        schedule=schedule,
    )
    assignment.worker = worker
    assignment.user = user
    return assignment


class UserReportTests(unittest.TestCase):
    def test_deficit_user_report(self) -> None:
        worker = _worker(1, "Maria")
        user = _user(100, "Ana", 20)
        report = build_user_report(
            user=user,
            assignments=[_assignment(1, worker, user, MONDAY_MORNINGS)],
            year=2026,
            month=2,
            holiday_days=set(),
            today=date(2026, 2, 28),
            policy=DEFAULT_FESTIVE_KEY_POLICY,
        )
        self.assertEqual(report.assigned_hours, 16.0)
        self.assertEqual(report.used_hours, 16.0)
        self.assertEqual(report.remaining_hours, 4.0)
        self.assertEqual(report.status, BalanceStatus.DEFICIT)
        self.assertEqual(report.percentage, 80.0)
        self.assertEqual(report.assignments[0].worker_name, "Maria Test")

        body = report.model_dump(by_alias=True, mode="json")
        self.assertEqual(body["entityId"], 100)
        self.assertEqual(body["holidayInfo"]["workingDays"], 20)
        self.assertEqual(body["status"], "deficit")

    def test_monthly_hours_override(self) -> None:
        worker = _worker(1, "Maria")
        user = _user(100, "Ana", 20)
        report = build_user_report(
            user=user,
            assignments=[_assignment(1, worker, user, MONDAY_MORNINGS)],
            year=2026,
            month=2,
            holiday_days=set(),
            today=date(2026, 2, 28),
            policy=DEFAULT_FESTIVE_KEY_POLICY,
            monthly_hours=16,
        )
        self.assertEqual(report.status, BalanceStatus.PERFECT)
        self.assertEqual(report.remaining_hours, 0.0)
        self.assertEqual(report.percentage, 100.0)


class WorkerReportTests(unittest.TestCase):
    def setUp(self) -> None:
        self.maria = _worker(1, "Maria")
        self.lucia = _worker(2, "Lucia")
        self.ana = _user(100, "Ana", 20)
        self.pere = _user(200, "Pere", 4)
        self.ana_maria = _assignment(1, self.maria, self.ana, MONDAY_MORNINGS)
        self.ana_lucia = _assignment(2, self.lucia, self.ana, TUESDAY_HOUR)
        self.pere_maria = _assignment(3, self.maria, self.pere, TUESDAY_HOUR)
        self.by_user = {
            100: [self.ana_maria, self.ana_lucia],
            200: [self.pere_maria],
        }

    def _build(self, load_user_assignments):  # type: ignore[no-untyped-def]
        return build_worker_report(
            worker=self.maria,
            worker_assignments=[self.ana_maria, self.pere_maria],
            load_user_assignments=load_user_assignments,
            year=2026,
            month=2,
            holiday_days=set(),
            today=date(2026, 2, 28),
            policy=DEFAULT_FESTIVE_KEY_POLICY,
        )

    def test_user_entries_cover_every_worker_of_the_user(self) -> None:
        report = self._build(lambda user_id: self.by_user[user_id])

        self.assertEqual([item.entity_id for item in report.user_balances], [100, 200])
        ana = report.user_balances[0]
        self.assertEqual(ana.assigned_hours, 20.0)
        self.assertEqual(ana.worker_assigned_hours, 16.0)
        self.assertEqual(ana.status, BalanceStatus.PERFECT)
        self.assertEqual([item.assignment_id for item in ana.assignments], [1])

        pere = report.user_balances[1]
        self.assertEqual(pere.assigned_hours, 4.0)
        self.assertEqual(pere.status, BalanceStatus.PERFECT)

        self.assertEqual(report.total_monthly_hours, 24.0)
        self.assertEqual(report.total_used_hours, 24.0)
        self.assertEqual(report.total_worker_assigned_hours, 20.0)
        self.assertEqual(report.overall_status, BalanceStatus.PERFECT)
        self.assertEqual(report.overall_percentage, 100.0)
        self.assertEqual(report.skipped_user_ids, [])

    def test_failed_user_read_is_skipped(self) -> None:
        def _load(user_id: int) -> list[Assignment]:
            if user_id == 100:
                raise OperationalError("SELECT assignments", {}, Exception("connection reset"))
            return self.by_user[user_id]

        with self.assertLogs("carehours.balance_reports", level="WARNING") as captured:
            report = self._build(_load)

        self.assertTrue(any("user_balance_skipped" in line for line in captured.output))
        self.assertEqual([item.entity_id for item in report.user_balances], [200])
        self.assertEqual(report.skipped_user_ids, [100])
        self.assertEqual(report.total_monthly_hours, 4.0)
        self.assertEqual(report.overall_status, BalanceStatus.PERFECT)

    def test_overall_status_uses_summed_totals(self) -> None:
        self.pere.monthly_hours = 10
        report = self._build(lambda user_id: self.by_user[user_id])

        self.assertEqual(report.user_balances[1].status, BalanceStatus.DEFICIT)
        self.assertEqual(report.total_monthly_hours, 30.0)
        self.assertEqual(report.total_remaining_hours, 6.0)
        self.assertEqual(report.overall_status, BalanceStatus.DEFICIT)
        self.assertEqual(report.overall_percentage, 80.0)

        body = report.model_dump(by_alias=True, mode="json")
        self.assertEqual(body["overallStatus"], "deficit")
        self.assertEqual(body["userBalances"][0]["workerAssignedHours"], 16.0)


class PlanningBalanceTests(unittest.TestCase):
    def test_planning_sums_and_splits_holidays(self) -> None:
        planning = [
            PlanningDay(date=date(2026, 2, 2), hours=4),
            PlanningDay(date=date(2026, 2, 7), hours=2.5, is_holiday=True),
            PlanningDay(date=date(2026, 2, 9), hours=4),
        ]
        result = build_planning_balance(planning, 12)

        self.assertEqual(result.scheduled_hours, 10.5)
        self.assertEqual(result.balance, 1.5)
        self.assertEqual(result.computation.status, BalanceStatus.DEFICIT)
        self.assertEqual(result.holiday_info.total_holidays, 1)
        self.assertEqual(result.holiday_info.holiday_hours, 2.5)
        self.assertEqual(result.holiday_info.working_days, 2)

        values = result.to_values()
        self.assertEqual(values["planning"][1], {"date": "2026-02-07", "hours": 2.5, "isHoliday": True})
        self.assertEqual(values["holiday_info"]["totalHolidays"], 1)
        self.assertEqual(values["status"], BalanceStatus.DEFICIT)

    def test_used_hours_stop_at_reference_date(self) -> None:
        planning = [
            PlanningDay(date=date(2026, 2, 2), hours=4),
            PlanningDay(date=date(2026, 2, 9), hours=4),
            PlanningDay(date=date(2026, 2, 16), hours=4, worker_id=2),
        ]
        result = build_planning_balance(planning, 12, date(2026, 2, 10))

        self.assertEqual(result.scheduled_hours, 12.0)
        self.assertEqual(result.used_hours, 8.0)
        self.assertEqual(result.computation.status, BalanceStatus.PERFECT)

        values = result.to_values()
        self.assertEqual(values["used_hours"], 8.0)
        self.assertEqual(values["scheduled_hours"], 12.0)
        self.assertEqual(values["planning"][2], {"date": "2026-02-16", "hours": 4.0, "isHoliday": False, "workerId": 2})

    def test_pair_planning_lists_every_day(self) -> None:
        worker = _worker(1, "Maria")
        user = _user(100, "Ana", 20)
        planning = pair_planning(
            [_assignment(1, worker, user, MONDAY_MORNINGS)],
            year=2026,
            month=2,
            holiday_days={16},
            policy=DEFAULT_FESTIVE_KEY_POLICY,
        )
        self.assertEqual(len(planning), 28)
        self.assertEqual(planning[1].hours, 4.0)
        self.assertTrue(planning[15].is_holiday)
        self.assertEqual(planning[15].hours, 0.0)
        self.assertEqual(sum(item.hours for item in planning), 12.0)


if __name__ == "__main__":
    unittest.main()
