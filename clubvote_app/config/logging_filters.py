import logging

_PROBE_PATHS = ("/healthz", "/readyz")


class HealthEndpointFilter(logging.Filter):
    """Drop access-log lines for successful liveness/readiness probes.

    Failing probes are kept so an unhealthy database still shows up in logs.
    """

    def __init__(self, name: str = "", paths: tuple[str, ...] = _PROBE_PATHS) -> None:
        super().__init__(name)
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if not any(path in message for path in self.paths):
            return True
        status_code = getattr(record, "status_code", None)
        if status_code is not None:
            return int(status_code) != 200
        return " 200 " not in message
