import logging

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

logger = logging.getLogger(__name__)


class Metrics:
    def __init__(self, enabled: bool = False) -> None:
        self._configure(enabled)

    def _configure(self, enabled: bool) -> None:
        self.enabled = enabled
        self.registry = CollectorRegistry(auto_describe=True)
        if not enabled:
            self.backend_requests = None
            self.function_calls = None
            self.http_5xx = None
            return

        self.backend_requests = Counter(
            "backend_requests_total",
            "Hosted store requests by kind and result.",
            ["kind", "result"],
            registry=self.registry,
        )
        self.function_calls = Counter(
            "function_calls_total",
            "Serverless function invocations by function and result.",
            ["function", "result"],
            registry=self.registry,
        )
        self.http_5xx = Counter(
            "http_5xx_total",
            "HTTP responses with status >= 500.",
            ["method", "path"],
            registry=self.registry,
        )

    def record_backend_request(self, kind: str, result: str) -> None:
        if not self.enabled or self.backend_requests is None:
            return
        self.backend_requests.labels(kind=kind, result=result).inc()

    def record_function_call(self, function: str, result: str) -> None:
        if not self.enabled or self.function_calls is None:
            return
        self.function_calls.labels(function=function, result=result).inc()

    def record_http_5xx(self, method: str, path: str) -> None:
        if not self.enabled or self.http_5xx is None:
            return
        self.http_5xx.labels(method=method, path=path).inc()

    def render(self) -> tuple[bytes, str]:
        if not self.enabled:
            return b"metrics_disabled 1\n", "text/plain; version=0.0.4"
        try:
            return generate_latest(self.registry), CONTENT_TYPE_LATEST
        except Exception:  # noqa: BLE001
            logger.exception("metrics_render_failed")
            return b"metrics_render_failed 1\n", "text/plain; version=0.0.4"


metrics = Metrics(enabled=False)


def configure_metrics(enabled: bool) -> Metrics:
    metrics._configure(enabled)
    return metrics
