import logging

from django.test import SimpleTestCase

from config.logging_filters import HealthEndpointFilter


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("django.server", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class HealthEndpointFilterTests(SimpleTestCase):
    def test_successful_probes_are_dropped(self) -> None:
        f = HealthEndpointFilter()
        self.assertFalse(f.filter(_record('"GET /healthz HTTP/1.1" 200 15')))
        self.assertFalse(f.filter(_record('"GET /readyz HTTP/1.1" 200 40', status_code=200)))

    def test_failing_probes_are_kept(self) -> None:
        f = HealthEndpointFilter()
        self.assertTrue(f.filter(_record('"GET /readyz HTTP/1.1" 503 40')))
        self.assertTrue(f.filter(_record('"GET /readyz HTTP/1.1" 503 40', status_code=503)))

    def test_other_requests_are_kept(self) -> None:
        f = HealthEndpointFilter()
        self.assertTrue(f.filter(_record('"POST /elections/1/votes/ HTTP/1.1" 200 90')))

    def test_custom_paths(self) -> None:
        f = HealthEndpointFilter(paths=("/ping",))
        self.assertFalse(f.filter(_record('"GET /ping HTTP/1.1" 200 2')))
        self.assertTrue(f.filter(_record('"GET /healthz HTTP/1.1" 200 15')))
