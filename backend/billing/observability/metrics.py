"""Prometheus metrics helpers for billing, quotas and the other plan-gated features."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

BILLING_REQUEST_COUNT = Counter(
    "billing_request_total",
    "Number of billing API requests",
    labelnames=("endpoint", "method", "status"),
)

BILLING_REQUEST_LATENCY = Histogram(
    "billing_request_duration_seconds",
    "Latency of billing API requests",
    labelnames=("endpoint", "method"),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

ENTITLEMENT_DENIED_COUNT = Counter(
    "workbench_entitlement_denied_total",
    "Writes rejected by subscription state or plan limits",
    labelnames=("code",),
)

UPLOAD_BYTES_RECORDED = Counter(
    "workbench_upload_bytes_total",
    "Bytes accepted by file uploads",
)

EXPORT_COUNT = Counter(
    "workbench_document_export_total",
    "Document exports by format and outcome",
    labelnames=("format", "outcome"),
)

AI_REQUEST_COUNT = Counter(
    "workbench_ai_request_total",
    "Assistant requests by outcome",
    labelnames=("outcome",),
)
