from __future__ import annotations

"""
Prometheus metrics for Playground Services.

Two families are exported from one per-app registry:

HTTP (recorded by :class:`PrometheusMiddleware`)
    http_requests_total{method,path,status}
    http_request_duration_seconds{method,path,status}
    http_inprogress_requests{method}

Toolchain (fed by the process runner's observer hook)
    toolchain_commands_total{command,outcome}
    toolchain_command_seconds{command}

``path`` is the matched route template (``/compile``), never the raw URL, and
``command`` is the runner's low-cardinality label (``stellar contract deploy``).

Usage
-----
    metrics = setup_metrics(app, service_version="0.1.0")
    runner = ProcessRunner(observer=metrics.observe_command)

Env
---
- PROMETHEUS_MULTIPROC_DIR: if set, aggregate across uvicorn worker processes.
- METRICS_PATH: export path (default /metrics).
"""

import os
import time
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, FastAPI
from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, Histogram, Info, PlatformCollector,
                               ProcessCollector, generate_latest, multiprocess)
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

# Builds run for minutes; the upper buckets stay wide.
HTTP_BUCKETS: Tuple[float, ...] = (0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0)
COMMAND_BUCKETS: Tuple[float, ...] = (0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0)

UNMATCHED = "<unmatched>"


class Metrics:
    """Registry plus metric objects; stored on ``app.state.metrics``."""

    def __init__(self, service_name: str, service_version: Optional[str] = None) -> None:
        self.multiproc_dir = os.getenv("PROMETHEUS_MULTIPROC_DIR")
        self.registry = CollectorRegistry()
        if self.multiproc_dir:
            multiprocess.MultiProcessCollector(self.registry)
        else:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)

        self._init_http()
        self._init_toolchain()

        self.service_info = Info("service", "Service metadata", registry=self.registry)
        info = {"name": service_name}
        if service_version:
            info["version"] = service_version
        self.service_info.info(info)

    def _init_http(self) -> None:
        gauge_kwargs: Dict[str, Any] = {}
        if self.multiproc_dir:
            gauge_kwargs["multiprocess_mode"] = "livesum"
        self.http_inprogress = Gauge(
            "http_inprogress_requests",
            "In-progress HTTP requests",
            ["method"],
            registry=self.registry,
            **gauge_kwargs,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "path", "status"],
            buckets=HTTP_BUCKETS,
            registry=self.registry,
        )

    def _init_toolchain(self) -> None:
        self.toolchain_commands_total = Counter(
            "toolchain_commands_total",
            "External toolchain commands executed, by outcome (ok, nonzero, spawn_error, timeout)",
            ["command", "outcome"],
            registry=self.registry,
        )
        self.toolchain_command_seconds = Histogram(
            "toolchain_command_seconds",
            "Wall time of external toolchain commands",
            ["command"],
            buckets=COMMAND_BUCKETS,
            registry=self.registry,
        )

    def observe_request(self, method: str, path: str, status: int, seconds: float) -> None:
        labels = (method, path, str(status))
        self.http_requests_total.labels(*labels).inc()
        self.http_request_duration_seconds.labels(*labels).observe(seconds)

    def observe_command(self, command: str, outcome: str, seconds: float) -> None:
        """``ProcessRunner`` observer: one call per external command."""
        self.toolchain_commands_total.labels(command, outcome).inc()
        self.toolchain_command_seconds.labels(command).observe(seconds)

    def render_latest(self) -> bytes:
        return generate_latest(self.registry)


def _route_template(scope: Scope) -> str:
    # FastAPI records the matched route on the shared scope while routing.
    route = scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    return template if isinstance(template, str) and template else UNMATCHED


class PrometheusMiddleware:
    """Pure ASGI middleware; the label set is resolved after the app has routed."""

    def __init__(self, app: ASGIApp, metrics: Metrics):
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        status = 500
        inprogress = self.metrics.http_inprogress.labels(method)

        async def capture_status(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = int(message.get("status", 500))
            await send(message)

        inprogress.inc()
        started = time.perf_counter()
        try:
            await self.app(scope, receive, capture_status)
        finally:
            inprogress.dec()
            self.metrics.observe_request(method, _route_template(scope), status, time.perf_counter() - started)


def create_metrics_router(metrics: Metrics, path: str = "/metrics") -> APIRouter:
    router = APIRouter()

    @router.get(path, include_in_schema=False)
    async def metrics_endpoint() -> Response:
        return Response(content=metrics.render_latest(), media_type=CONTENT_TYPE_LATEST)

    return router


def setup_metrics(
    app: FastAPI,
    *,
    service_name: str = "playground-services",
    service_version: Optional[str] = None,
    path: Optional[str] = None,
) -> Metrics:
    """
    Create the registry, add the HTTP middleware and mount the exporter.

    Returns the :class:`Metrics` instance (also stored on ``app.state.metrics``)
    so the caller can hand ``observe_command`` to the process runner.
    """
    metrics = Metrics(service_name=service_name, service_version=service_version)
    app.add_middleware(PrometheusMiddleware, metrics=metrics)
    app.include_router(create_metrics_router(metrics, path or os.getenv("METRICS_PATH") or "/metrics"))
    app.state.metrics = metrics
    return metrics


__all__ = [
    "Metrics",
    "PrometheusMiddleware",
    "create_metrics_router",
    "setup_metrics",
]
