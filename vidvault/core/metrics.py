"""Prometheus metrics for the upload API.

Tracks HTTP traffic, upload outcomes and external media tool timings.
"""

import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
    multiprocess,
)

REGISTRY = CollectorRegistry()

# Running under gunicorn with multiple workers
if "prometheus_multiproc_dir" in os.environ:
    multiprocess.MultiProcessCollector(REGISTRY)


# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "vidvault_app",
    "Application information",
    registry=REGISTRY,
)


# ============================================
# HTTP Request Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)


# ============================================
# Upload Pipeline Metrics
# ============================================
VIDEO_UPLOADS_TOTAL = Counter(
    "video_uploads_total",
    "Video uploads by outcome",
    ["outcome"],
    registry=REGISTRY,
)

MEDIA_TOOL_DURATION_SECONDS = Histogram(
    "media_tool_duration_seconds",
    "External media tool run time in seconds",
    ["tool", "status"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
    registry=REGISTRY,
)

ASPECT_RATIO_CLASSIFICATIONS_TOTAL = Counter(
    "aspect_ratio_classifications_total",
    "Aspect ratio categories assigned to uploaded videos",
    ["category"],
    registry=REGISTRY,
)

STORAGE_OPERATIONS_TOTAL = Counter(
    "storage_operations_total",
    "Object storage operations by backend and status",
    ["backend", "operation", "status"],
    registry=REGISTRY,
)


def get_metrics() -> bytes:
    """Generate latest metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def set_app_info(version: str, environment: str) -> None:
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })
