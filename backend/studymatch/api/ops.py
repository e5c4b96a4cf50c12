"""Operations endpoints: liveness and Prometheus scrape."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from studymatch.settings import settings

router = APIRouter(prefix="", tags=["ops"])


@router.get("/health")
async def health() -> dict:
	return {"ok": True, "service": settings.service_name, "commit": settings.git_commit}


@router.get("/metrics")
async def metrics() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
