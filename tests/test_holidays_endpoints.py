from __future__ import annotations

import os
import unittest
from collections.abc import Generator
from datetime import date
from unittest.mock import patch

from fastapi.testclient import TestClient

from carehours.db import get_db
from carehours.main import app
from carehours.models import Holiday, HolidayType, Worker
from carehours.schemas import HolidayCreateRequest
from carehours.security import create_admin_access_token, create_worker_access_token
from carehours.settings import get_settings

TEST_ENV = {"JWT_SECRET": "holidays-test-secret"}


class _FakeScalars:
    def __init__(self, items: list[object]):
        self._items = items

    def all(self) -> list[object]:
        return list(self._items)


class _FakeDB:
    def __init__(self, *, holidays: list[Holiday] | None = None, get_result: object | None = None):
        self._holidays = holidays or []
        self._get_result = get_result
        self.added: list[object] = []
        self.deleted: list[object] = []
        self.statements: list[object] = []

    def scalars(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(statement)
        return _FakeScalars(self._holidays)

    def get(self, _model, _pk):  # type: ignore[no-untyped-def]
        return self._get_result

    def add(self, obj) -> None:  # type: ignore[no-untyped-def]
        self.added.append(obj)

    def delete(self, obj) -> None:  # type: ignore[no-untyped-def]
        self.deleted.append(obj)

    def commit(self) -> None:
        return None

    def rollback(self) -> None:
        return None

    def refresh(self, obj) -> None:  # type: ignore[no-untyped-def]
        if getattr(obj, "id", None) is None:
            obj.id = 31


def _override_get_db(fake_db: _FakeDB):
    def _override() -> Generator[_FakeDB, None, None]:
        yield fake_db

    return _override


class HolidayEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self._env = patch.dict(os.environ, TEST_ENV, clear=False)
        self._env.start()
        get_settings.cache_clear()
        token, _expires_in, _claims = create_admin_access_token(username="admin")
        self.headers = {"Authorization": f"Bearer {token}"}

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self._env.stop()
        get_settings.cache_clear()

    def _client(self, fake_db: _FakeDB) -> TestClient:
        app.dependency_overrides[get_db] = _override_get_db(fake_db)
        return TestClient(app)

    def test_list_requires_year(self) -> None:
        client = self._client(_FakeDB())

        response = client.get("/api/holidays", headers=self.headers)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing required parameters: year")

    def test_list_returns_holidays(self) -> None:
        holiday = Holiday(
            id=3,
            date=date(2026, 6, 24),
            name="Sant Joan",
            type=HolidayType.REGIONAL,
            region="Catalunya",
            city="Mataró",
            is_active=True,
        )
        fake_db = _FakeDB(holidays=[holiday])
        client = self._client(fake_db)

        response = client.get("/api/holidays", params={"year": 2026, "month": 6}, headers=self.headers)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["holidays"][0]["date"], "2026-06-24")
        self.assertEqual(body["holidays"][0]["type"], "regional")
        self.assertEqual(len(fake_db.statements), 1)

    def test_create_requires_name_and_date(self) -> None:
        fake_db = _FakeDB()
        client = self._client(fake_db)

        response = client.post("/api/holidays", json={"name": "  "}, headers=self.headers)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing required parameters: name, date")
        self.assertEqual(fake_db.added, [])

    def test_create_applies_local_defaults(self) -> None:
        fake_db = _FakeDB()
        client = self._client(fake_db)

        response = client.post(
            "/api/holidays",
            json={"name": " Les Santes ", "date": "2026-07-27"},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 200)
        holiday = response.json()["holiday"]
        self.assertEqual(holiday["id"], 31)
        self.assertEqual(holiday["name"], "Les Santes")
        self.assertEqual(holiday["type"], "local")
        self.assertEqual(holiday["region"], "Catalunya")
        self.assertEqual(holiday["city"], "Mataró")

    def test_delete_requires_id(self) -> None:
        client = self._client(_FakeDB())

        response = client.delete("/api/holidays", headers=self.headers)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "MISSING_PARAMETERS")

    def test_delete_unknown_holiday_returns_404(self) -> None:
        client = self._client(_FakeDB(get_result=None))

        response = client.delete("/api/holidays", params={"id": 5}, headers=self.headers)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "HOLIDAY_NOT_FOUND")

    def test_delete_removes_holiday(self) -> None:
        holiday = Holiday(id=5, date=date(2026, 9, 11), name="Diada")
        fake_db = _FakeDB(get_result=holiday)
        client = self._client(fake_db)

        response = client.delete("/api/holidays", params={"id": 5}, headers=self.headers)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})
        self.assertEqual(fake_db.deleted, [holiday])

    def test_worker_token_cannot_manage_holidays(self) -> None:
        client = self._client(_FakeDB())
        token, _expires_in, _claims = create_worker_access_token(
            worker=Worker(id=2, name="Lucia", email="lucia@example.com"),
        )

        response = client.post(
            "/api/holidays",
            json={"name": "Diada", "date": "2026-09-11"},
            headers={"Authorization": f"Bearer {token}"},
        )

        self.assertEqual(response.status_code, 403)


class HolidayCreateRequestTests(unittest.TestCase):
    def test_date_is_optional_and_parsed(self) -> None:
        self.assertIsNone(HolidayCreateRequest(name="Sant Joan").date)

        payload = HolidayCreateRequest.model_validate({"name": "Sant Joan", "date": "2026-06-24"})
        self.assertEqual(payload.date, date(2026, 6, 24))


if __name__ == "__main__":
    unittest.main()
