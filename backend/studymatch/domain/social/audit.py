"""Audit helpers for connection transitions."""

from __future__ import annotations

from typing import Dict

from studymatch.infra.redis import redis_client
from studymatch.obs import metrics as obs_metrics

CONNECTION_STREAM = "x:connections.events"


async def log_connection_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	await redis_client.xadd_capped(CONNECTION_STREAM, payload)


def inc_transition(kind: str) -> None:
	obs_metrics.inc_connection_transition(kind)
