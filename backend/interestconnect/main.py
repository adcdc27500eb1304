"""ASGI entrypoint: FastAPI app plus the Socket.IO server wrapping it.

Run with ``uvicorn interestconnect.main:socket_app``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from interestconnect import obs
from interestconnect.api import communities, messages, ops, users
from interestconnect.api.errors import install_error_handlers
from interestconnect.domain.realtime.hub import get_hub
from interestconnect.domain.realtime.sockets import RealtimeNamespace
from interestconnect.infra import postgres
from interestconnect.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="InterestConnect API", lifespan=lifespan)
obs.init(app)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:5173", "http://127.0.0.1:5173"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

app.include_router(users.router, tags=["users"])
app.include_router(communities.router, tags=["communities"])
app.include_router(messages.router, tags=["messages"])
app.include_router(ops.router, tags=["ops"])

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
realtime_namespace = RealtimeNamespace(get_hub())
sio.register_namespace(realtime_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
