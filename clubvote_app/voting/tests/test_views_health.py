from unittest.mock import patch

from django.test import TestCase

from voting.tests.utils_test_data import make_election


class HealthViewsTests(TestCase):
    def test_healthz_returns_ok(self) -> None:
        resp = self.client.get("/healthz")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_readyz_reports_open_elections(self) -> None:
        make_election()
        make_election(title="Finished", status="completed")

        resp = self.client.get("/readyz")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ready", "database": "ok", "open_elections": 1})

    def test_readyz_returns_503_when_db_unavailable(self) -> None:
        with patch("django.db.connection.ensure_connection", side_effect=RuntimeError("db down")):
            with self.assertLogs("voting.views_health", level="ERROR"):
                resp = self.client.get("/readyz")

        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json(), {"status": "not ready", "error": "RuntimeError"})
