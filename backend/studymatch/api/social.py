"""REST API surface for connection requests."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from studymatch import container
from studymatch.domain.errors import InvalidArgument
from studymatch.domain.matching.schemas import ProfileCard
from studymatch.domain.social.schemas import (
	ConnectionCountResponse,
	ConnectionIndexResponse,
	ConnectionRequestResult,
	ConnectionStatusResponse,
	ConnectionSummary,
)
from studymatch.domain.social.service import ConnectionGraph
from studymatch.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/connections", tags=["connections"])


@router.post("/{target_id}/request", response_model=ConnectionRequestResult)
async def request_connection(
	target_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	graph: ConnectionGraph = Depends(container.get_connection_graph),
) -> ConnectionRequestResult:
	if target_id == auth_user.id:
		raise InvalidArgument("self_connection")
	edge = await graph.request_connection(auth_user.id, target_id)
	return ConnectionRequestResult(connection=ConnectionSummary.for_viewer(edge, auth_user.id) if edge else None)


@router.post("/{requester_id}/accept", response_model=ConnectionSummary)
async def accept_connection(
	requester_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	graph: ConnectionGraph = Depends(container.get_connection_graph),
) -> ConnectionSummary:
	edge = await graph.accept_connection(auth_user.id, requester_id)
	return ConnectionSummary.for_viewer(edge, auth_user.id)


@router.post("/{requester_id}/decline", response_model=ConnectionSummary)
async def decline_connection(
	requester_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	graph: ConnectionGraph = Depends(container.get_connection_graph),
) -> ConnectionSummary:
	edge = await graph.decline_connection(auth_user.id, requester_id)
	return ConnectionSummary.for_viewer(edge, auth_user.id)


@router.get("/index", response_model=ConnectionIndexResponse)
async def connection_index(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	graph: ConnectionGraph = Depends(container.get_connection_graph),
) -> ConnectionIndexResponse:
	index = await graph.connection_index(auth_user.id)
	return ConnectionIndexResponse(states={other: state.value for other, state in index.items()})


@router.get("/count", response_model=ConnectionCountResponse)
async def count_connections(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	graph: ConnectionGraph = Depends(container.get_connection_graph),
) -> ConnectionCountResponse:
	return ConnectionCountResponse(accepted=await graph.count_accepted(auth_user.id))


@router.get("", response_model=List[ProfileCard])
async def list_connections(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	graph: ConnectionGraph = Depends(container.get_connection_graph),
) -> List[ProfileCard]:
	return [ProfileCard.from_model(profile) for profile in await graph.list_accepted(auth_user.id)]


@router.get("/{other_id}/status", response_model=ConnectionStatusResponse)
async def connection_status(
	other_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	graph: ConnectionGraph = Depends(container.get_connection_graph),
) -> ConnectionStatusResponse:
	state = await graph.status_for(auth_user.id, other_id)
	return ConnectionStatusResponse(user_id=other_id, state=state.value)
