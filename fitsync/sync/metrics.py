from __future__ import annotations

import logging

from ..metrics.registry import (
    MUTATIONS_TRANSMITTED_TOTAL,
    QUEUE_PENDING,
    SYNC_PASSES_TOTAL,
    TRANSMIT_LATENCY_SECONDS,
)

logger = logging.getLogger(__name__)

# Metric failures are logged and dropped; they must never turn a
# successful transmission into a failed one.


def observe_sync_pass(result: str) -> None:
    try:
        SYNC_PASSES_TOTAL.labels(result=result).inc()
    except Exception:
        logger.debug("Failed to record sync pass metric", exc_info=True)


def observe_transmission(entity_type: str, operation: str, status: str, latency_s: float) -> None:
    """
    Record one transmission attempt.

    Args:
        entity_type: Entity type tag of the record
        operation: CREATE / UPDATE / DELETE
        status: "success" or "error"
        latency_s: Wall-clock duration of the remote call in seconds
    """
    try:
        MUTATIONS_TRANSMITTED_TOTAL.labels(
            entity_type=entity_type, operation=operation, status=status
        ).inc()
        TRANSMIT_LATENCY_SECONDS.labels(entity_type=entity_type).observe(latency_s)
    except Exception:
        logger.debug("Failed to record transmission metric", exc_info=True)


def observe_queue_pending(count: int) -> None:
    try:
        QUEUE_PENDING.set(count)
    except Exception:
        logger.debug("Failed to record queue size metric", exc_info=True)
