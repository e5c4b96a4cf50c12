"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studymatch import container, obs
from studymatch.api import chat, events, matching, ops, social
from studymatch.api.errors import install_error_handlers
from studymatch.domain.chat.sockets import ChatNamespace
from studymatch.domain.social.sockets import SocialNamespace, set_namespace
from studymatch.infra import postgres
from studymatch.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	obs.init(app)
	await postgres.warm_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="StudyMatch API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:5173", "http://localhost:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs.install(app)

socket_origins = settings.socketio_cors_origins.split(",") if settings.socketio_cors_origins else allow_origins
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=socket_origins)
social_namespace = SocialNamespace()
sio.register_namespace(social_namespace)
set_namespace(social_namespace)
chat_namespace = ChatNamespace(container.get_stream)
sio.register_namespace(chat_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)

app.include_router(ops.router)
app.include_router(matching.router)
app.include_router(social.router)
app.include_router(chat.router)
app.include_router(events.router)
