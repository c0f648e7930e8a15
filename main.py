import json
import logging
from datetime import datetime

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from taskrelay.config.settings import settings
from taskrelay.database import init_db
from taskrelay.routers import tasks, users
from taskrelay.services.notification_router import NotificationRouter
from taskrelay.services.session_registry import SessionRegistry, WebSocketTransport

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Task Relay API")

# Realtime delivery, owned by this app instance
app.state.session_registry = SessionRegistry()
app.state.notification_router = NotificationRouter(app.state.session_registry)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Route registration
app.include_router(tasks.router)
app.include_router(users.router)


@app.on_event("startup")
async def startup_event():
    """Create tables when the application starts"""
    logger.info("Starting Task Relay API...")
    init_db()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down Task Relay API with {app.state.session_registry.total_connections()} open channels")
    await app.state.notification_router.stop()


# Root route
@app.get("/")
def read_root():
    return {"message": "Task Relay API"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/realtime/status")
def get_realtime_status():
    """Get channel registry counters"""
    registry: SessionRegistry = app.state.session_registry
    return {
        "connected_users": registry.connected_users(),
        "total_connections": registry.total_connections(),
    }


# WebSocket endpoint: translates socket lifecycle into registry calls
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    registry: SessionRegistry = websocket.app.state.session_registry
    channel = registry.connect(WebSocketTransport(websocket))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            data = message.get("text")
            if data is None:
                logger.debug(f"Ignoring binary frame on channel {channel.id}")
                continue

            try:
                received_data = json.loads(data)
            except json.JSONDecodeError:
                logger.debug(f"Ignoring non-JSON frame on channel {channel.id}")
                continue
            if not isinstance(received_data, dict):
                continue

            event = received_data.get("event")
            if event == "join":
                await registry.join(channel, received_data.get("userId"))
            elif event == "ping":
                await channel.send("pong", {"timestamp": datetime.now().isoformat()})
            else:
                logger.debug(f"Ignoring unknown event {event!r} on channel {channel.id}")

    except WebSocketDisconnect:
        pass
    finally:
        registry.disconnect(channel)
