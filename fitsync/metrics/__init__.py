from .registry import (
    MUTATIONS_TRANSMITTED_TOTAL,
    QUEUE_PENDING,
    SYNC_PASSES_TOTAL,
    TRANSMIT_LATENCY_SECONDS,
)

__all__ = [
    "MUTATIONS_TRANSMITTED_TOTAL",
    "QUEUE_PENDING",
    "SYNC_PASSES_TOTAL",
    "TRANSMIT_LATENCY_SECONDS",
]
