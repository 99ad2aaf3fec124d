from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

SYNC_PASSES_TOTAL = Counter(
    "fitsync_sync_passes_total",
    "Sync passes by outcome (completed, failed, skipped_busy, skipped_offline, skipped_unauthenticated).",
    ["result"],
)

MUTATIONS_TRANSMITTED_TOTAL = Counter(
    "fitsync_mutations_transmitted_total",
    "Mutation records transmitted to the remote store.",
    ["entity_type", "operation", "status"],
)

TRANSMIT_LATENCY_SECONDS = Histogram(
    "fitsync_transmit_latency_seconds",
    "Latency of a single mutation transmission.",
    ["entity_type"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

QUEUE_PENDING = Gauge(
    "fitsync_queue_pending",
    "Mutation records currently queued (retryable and parked).",
)
