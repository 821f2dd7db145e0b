"""Prometheus instrumentation.

Everything registers on the default registry under the ``shellfolio_`` prefix:
- Connection attempts (accepted, refused, failed)
- Active sessions and session duration
- Commands executed (by outcome)
- Arcade games started and best high score
- Durable storage write failures
"""

from __future__ import annotations

import logging
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Lock, Thread
from typing import Callable, Dict, Optional, Tuple

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY,
    CONTENT_TYPE_LATEST,
)

logger = logging.getLogger(__name__)

connections_total = Counter(
    "shellfolio_connections_total",
    "Total number of connection attempts",
    ["result"],  # accepted, refused, failed
)

sessions_active = Gauge(
    "shellfolio_sessions_active",
    "Currently active shell sessions",
)

session_duration = Histogram(
    "shellfolio_session_duration_seconds",
    "Shell session duration in seconds",
    buckets=[10, 30, 60, 300, 600, 1800, 3600],
)

commands_total = Counter(
    "shellfolio_commands_total",
    "Total number of commands executed",
    ["outcome"],  # builtin, unsupported, unknown
)

games_started = Counter(
    "shellfolio_games_started_total",
    "Number of arcade rounds started",
)

high_score = Gauge(
    "shellfolio_high_score",
    "Best arcade score persisted so far",
)

storage_failures = Counter(
    "shellfolio_storage_failures_total",
    "Durable storage writes that failed",
    ["record"],
)

uptime_seconds = Gauge(
    "shellfolio_uptime_seconds",
    "Server uptime in seconds",
)


class MetricsCollector:
    """Records shell activity into the process-wide Prometheus registry."""

    def __init__(self):
        self._lock = Lock()
        self._started = time.time()
        self._best_score = 0
        self._live_sessions = 0

    @property
    def live_sessions(self) -> int:
        return self._live_sessions

    def record_connection(self, result: str):
        """Count a connection by how it ended: accepted, refused or failed."""
        connections_total.labels(result=result).inc()

    def record_session_start(self):
        with self._lock:
            self._live_sessions += 1
        sessions_active.inc()

    def record_session_end(self, duration_seconds: float):
        with self._lock:
            self._live_sessions = max(0, self._live_sessions - 1)
        sessions_active.dec()
        session_duration.observe(duration_seconds)

    def record_command(self, outcome: str):
        """Record a dispatched command by how it was answered."""
        commands_total.labels(outcome=outcome).inc()

    def record_game_started(self):
        games_started.inc()

    def record_high_score(self, score: int):
        with self._lock:
            if score > self._best_score:
                self._best_score = score
                high_score.set(score)

    def record_storage_failure(self, record: str):
        storage_failures.labels(record=record).inc()

    def exposition(self) -> bytes:
        """Current registry contents in the Prometheus text format."""
        uptime_seconds.set(time.time() - self._started)
        return generate_latest(REGISTRY)


_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector


def reset_metrics_collector():
    """Forget the process-wide collector; the registry itself is kept."""
    global _collector
    _collector = None


def _health(collector: MetricsCollector) -> Tuple[str, bytes]:
    return "text/plain", f"OK sessions={collector.live_sessions}\n".encode("ascii")


def _metrics(collector: MetricsCollector) -> Tuple[str, bytes]:
    return CONTENT_TYPE_LATEST, collector.exposition()


ROUTES: Dict[str, Callable[[MetricsCollector], Tuple[str, bytes]]] = {
    "/metrics": _metrics,
    "/health": _health,
}


class ExporterHandler(BaseHTTPRequestHandler):
    """Answers GET requests from ``ROUTES``; everything else is a 404."""

    collector: MetricsCollector

    def do_GET(self):
        route = ROUTES.get(self.path.split("?", 1)[0])
        if route is None:
            status, content_type, body = 404, "text/plain", b"Not Found\n"
        else:
            content_type, body = route(self.collector)
            status = 200
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("metrics %s - %s", self.address_string(), format % args)


def start_metrics_server(port: int = 9090, host: str = "0.0.0.0") -> HTTPServer:
    """Serve ``/metrics`` and ``/health`` from a daemon thread."""
    handler = type("BoundExporterHandler", (ExporterHandler,), {"collector": get_metrics_collector()})
    server = HTTPServer((host, port), handler)
    Thread(target=server.serve_forever, daemon=True, name="MetricsServer").start()
    logger.info("Metrics server started on http://%s:%d/metrics", host, port)
    return server
