"""Prometheus counters for warnings, errors and fatal log records."""

import logging

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

METRIC_PREFIX = "t53uploadserver"


class LogMessageCounter(logging.Handler):
    """Logging handler that counts WARNING, ERROR and CRITICAL records."""

    def __init__(self, metrics: "ServerMetrics"):
        super().__init__(logging.WARNING)
        self.metrics = metrics

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno >= logging.CRITICAL:
            self.metrics.fatals.inc()
        elif record.levelno >= logging.ERROR:
            self.metrics.errors.inc()
        else:
            self.metrics.warnings.inc()


class ServerMetrics:
    """Counters exposed on the metrics endpoint.

    Each instance owns its registry so several applications can live in
    one process.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self.warnings = Counter(
            f"{METRIC_PREFIX}_warnings_logged",
            "The number of warning messages logged since the process started",
            registry=self.registry,
        )
        self.errors = Counter(
            f"{METRIC_PREFIX}_errors_logged",
            "The number of error messages logged since the process started",
            registry=self.registry,
        )
        self.fatals = Counter(
            f"{METRIC_PREFIX}_fatals_logged",
            "The number of fatal messages logged since the process started",
            registry=self.registry,
        )
        self.handler = LogMessageCounter(self)

    def attach(self, logger: logging.Logger | None = None) -> None:
        """Start counting records that reach ``logger`` (root by default)."""
        (logger or logging.getLogger()).addHandler(self.handler)

    def detach(self, logger: logging.Logger | None = None) -> None:
        (logger or logging.getLogger()).removeHandler(self.handler)

    def render(self) -> bytes:
        return generate_latest(self.registry)
