"""Prometheus metrics for observability."""

import re
import time
from collections import defaultdict
from dataclasses import dataclass, field

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")


@dataclass
class Counter:
    """Simple counter metric."""

    name: str
    help: str
    labels: tuple[str, ...] = ()
    _values: dict[tuple, float] = field(default_factory=lambda: defaultdict(float))

    def inc(self, amount: float = 1.0, **labels: str) -> None:
        """Increment the counter."""
        label_values = tuple(labels.get(l, "") for l in self.labels)
        self._values[label_values] += amount

    def get(self, **labels: str) -> float:
        """Get counter value."""
        label_values = tuple(labels.get(l, "") for l in self.labels)
        return self._values[label_values]


@dataclass
class Gauge:
    """Simple gauge metric."""

    name: str
    help: str
    labels: tuple[str, ...] = ()
    _values: dict[tuple, float] = field(default_factory=lambda: defaultdict(float))

    def set(self, value: float, **labels: str) -> None:
        label_values = tuple(labels.get(l, "") for l in self.labels)
        self._values[label_values] = value

    def inc(self, amount: float = 1.0, **labels: str) -> None:
        label_values = tuple(labels.get(l, "") for l in self.labels)
        self._values[label_values] += amount

    def dec(self, amount: float = 1.0, **labels: str) -> None:
        label_values = tuple(labels.get(l, "") for l in self.labels)
        self._values[label_values] -= amount

    def get(self, **labels: str) -> float:
        label_values = tuple(labels.get(l, "") for l in self.labels)
        return self._values[label_values]


@dataclass
class Histogram:
    """Simple histogram metric with predefined buckets."""

    name: str
    help: str
    labels: tuple[str, ...] = ()
    buckets: tuple[float, ...] = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0)
    _counts: dict[tuple, dict[float, int]] = field(
        default_factory=lambda: defaultdict(lambda: defaultdict(int))
    )
    _sums: dict[tuple, float] = field(default_factory=lambda: defaultdict(float))
    _totals: dict[tuple, int] = field(default_factory=lambda: defaultdict(int))

    def observe(self, value: float, **labels: str) -> None:
        """Observe a value."""
        label_values = tuple(labels.get(l, "") for l in self.labels)

        self._sums[label_values] += value
        self._totals[label_values] += 1

        for bucket in self.buckets:
            if value <= bucket:
                self._counts[label_values][bucket] += 1


class MetricsRegistry:
    """Registry for all metrics."""

    def __init__(self):
        # HTTP metrics
        self.http_requests_total = Counter(
            name="http_requests_total",
            help="Total number of HTTP requests",
            labels=("method", "path", "status"),
        )

        self.http_request_duration_seconds = Histogram(
            name="http_request_duration_seconds",
            help="HTTP request duration in seconds",
            labels=("method", "path"),
        )

        self.http_requests_in_progress = Gauge(
            name="http_requests_in_progress",
            help="Number of HTTP requests in progress",
            labels=("method",),
        )

        # Generative / embedding provider metrics
        self.provider_requests_total = Counter(
            name="provider_requests_total",
            help="Total number of generative and embedding provider calls",
            labels=("operation", "status"),
        )

        self.provider_duration_seconds = Histogram(
            name="provider_duration_seconds",
            help="Provider call duration in seconds",
            labels=("operation",),
        )

        # Pipeline metrics
        self.questionnaire_steps_total = Counter(
            name="questionnaire_steps_total",
            help="Conversation steps by outcome",
            labels=("outcome",),
        )

        self.enrichment_failures_total = Counter(
            name="enrichment_failures_total",
            help="Optional enrichment reads that failed and were skipped",
            labels=("stage",),
        )

        self.synthesis_repairs_total = Counter(
            name="synthesis_repairs_total",
            help="Follow-up generative calls made to replace rejected recommendations",
        )

        # Background task metrics
        self.embedding_tasks_total = Counter(
            name="embedding_tasks_total",
            help="Embedding generation tasks by outcome",
            labels=("status",),
        )

        self.embedding_queue_depth = Gauge(
            name="embedding_queue_depth",
            help="Jobs waiting in the embedding queue",
        )

    def format_prometheus(self) -> str:
        """Format all metrics in Prometheus exposition format."""
        lines = []

        for metric in self.__dict__.values():
            if isinstance(metric, (Counter, Gauge)):
                kind = "counter" if isinstance(metric, Counter) else "gauge"
                lines.append(f"# HELP {metric.name} {metric.help}")
                lines.append(f"# TYPE {metric.name} {kind}")
                for label_values, value in metric._values.items():
                    if metric.labels:
                        labels_str = ",".join(
                            f'{l}="{v}"' for l, v in zip(metric.labels, label_values)
                        )
                        lines.append(f"{metric.name}{{{labels_str}}} {value}")
                    else:
                        lines.append(f"{metric.name} {value}")

            elif isinstance(metric, Histogram):
                lines.append(f"# HELP {metric.name} {metric.help}")
                lines.append(f"# TYPE {metric.name} histogram")
                for label_values in metric._sums.keys():
                    if metric.labels:
                        labels_str = ",".join(
                            f'{l}="{v}"' for l, v in zip(metric.labels, label_values)
                        )
                        base_labels = f"{{{labels_str},"
                    else:
                        base_labels = "{"

                    for bucket in metric.buckets:
                        count = metric._counts[label_values].get(bucket, 0)
                        lines.append(f'{metric.name}_bucket{base_labels}le="{bucket}"}} {count}')
                    lines.append(f'{metric.name}_bucket{base_labels}le="+Inf"}} {metric._totals[label_values]}')
                    suffix = base_labels.rstrip(",") + "}" if metric.labels else ""
                    lines.append(f"{metric.name}_sum{suffix} {metric._sums[label_values]}")
                    lines.append(f"{metric.name}_count{suffix} {metric._totals[label_values]}")

        return "\n".join(lines)


# Global metrics registry
metrics = MetricsRegistry()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP metrics."""

    async def dispatch(self, request: Request, call_next) -> Response:
        method = request.method
        path = self._normalize_path(request.url.path)

        metrics.http_requests_in_progress.inc(method=method)

        start_time = time.monotonic()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
        finally:
            duration = time.monotonic() - start_time
            metrics.http_requests_total.inc(method=method, path=path, status=status)
            metrics.http_request_duration_seconds.observe(duration, method=method, path=path)
            metrics.http_requests_in_progress.dec(method=method)

        return response

    def _normalize_path(self, path: str) -> str:
        """Normalize path for metric labels (replace IDs with placeholders)."""
        normalized = []
        for part in path.split("/"):
            if part.isdigit() or _UUID_RE.match(part):
                normalized.append(":id")
            else:
                normalized.append(part)
        return "/".join(normalized)
