"""Metrics recorded as short-lived Opik traces."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.core.context import get_request_id
from app.observability.client import get_opik_client

logger = logging.getLogger(__name__)

METRIC_PREFIX = "metric:"


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record ``value`` under ``metric:<name>``, tagged with the current request id."""
    client = get_opik_client()
    if not client:
        return

    payload: Dict[str, Any] = {"value": value, **(metadata or {})}
    request_id = get_request_id()
    if request_id:
        payload.setdefault("request_id", request_id)

    try:
        client.trace(name=f"{METRIC_PREFIX}{name}", metadata=payload).end()
    except Exception as exc:  # pragma: no cover - metrics never break requests
        logger.debug("Unable to record metric %s: %s", name, exc)
