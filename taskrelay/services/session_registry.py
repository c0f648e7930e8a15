import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

JOIN_CONFIRMATION_EVENT = "joinConfirmation"


class ChannelTransport(Protocol):
    async def send(self, message: Dict[str, Any]) -> None:
        ...


class WebSocketTransport:
    """Pushes channel frames over an accepted FastAPI WebSocket"""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, message: Dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(message))


class ChannelState(str, Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


class Channel:
    """One live real-time connection"""

    def __init__(self, transport: ChannelTransport):
        self.id = uuid.uuid4().hex
        self.transport = transport
        self.state = ChannelState.CONNECTED
        self.user_id: Optional[str] = None
        self.connected_at = datetime.now()

    async def send(self, event_name: str, payload: Dict[str, Any]) -> None:
        await self.transport.send({"event": event_name, "payload": payload})

    def __repr__(self):
        return f"<Channel(id={self.id}, state='{self.state.value}', user_id={self.user_id})>"


class SessionRegistry:
    """Tracks which live channels represent which user"""

    def __init__(self):
        # user_id -> channels joined under that user
        self.active_channels: Dict[str, Set[Channel]] = {}

    def connect(self, transport: ChannelTransport) -> Channel:
        """Register a new, not yet joined channel"""
        channel = Channel(transport)
        logger.info(f"Channel {channel.id} connected")
        return channel

    async def join(self, channel: Channel, user_id: Any) -> bool:
        """Associate a channel with a user and acknowledge it once"""
        if channel.state == ChannelState.DISCONNECTED:
            logger.debug(f"Ignoring join on disconnected channel {channel.id}")
            return False

        user_id = str(user_id).strip() if user_id is not None else ""
        if not user_id:
            logger.warning(f"Channel {channel.id} sent join without a user ID")
            return False

        if channel.state == ChannelState.JOINED:
            if channel.user_id == user_id:
                return True
            # A channel belongs to one user at a time
            logger.info(f"Channel {channel.id} moving from user {channel.user_id} to user {user_id}")
            self._unregister(channel)

        self.active_channels.setdefault(user_id, set()).add(channel)
        channel.user_id = user_id
        channel.state = ChannelState.JOINED
        logger.info(f"User {user_id} joined. Total channels: {self.connection_count(user_id)}")

        try:
            await channel.send(
                JOIN_CONFIRMATION_EVENT,
                {
                    "message": f"Joined room for user: {user_id}",
                    "timestamp": datetime.now().isoformat(),
                },
            )
        except Exception as e:
            logger.error(f"Error acknowledging join on channel {channel.id}: {e}")
            self.disconnect(channel)
            return False
        return True

    def disconnect(self, channel: Channel) -> None:
        """Drop a channel and any membership it holds"""
        if channel.state == ChannelState.DISCONNECTED:
            return
        user_id = channel.user_id
        self._unregister(channel)
        channel.state = ChannelState.DISCONNECTED
        if user_id:
            logger.info(f"User {user_id} disconnected. Remaining channels: {self.connection_count(user_id)}")
        else:
            logger.info(f"Channel {channel.id} disconnected")

    def _unregister(self, channel: Channel) -> None:
        if channel.user_id is None:
            return
        channels = self.active_channels.get(channel.user_id)
        if channels is not None:
            channels.discard(channel)
            # Remove user if no more channels
            if not channels:
                del self.active_channels[channel.user_id]
        channel.user_id = None

    def list_channels_for(self, user_id: str) -> List[Channel]:
        """Snapshot of the channels currently joined under a user"""
        return list(self.active_channels.get(str(user_id), ()))

    def connected_users(self) -> List[str]:
        """Get list of currently connected user IDs"""
        return list(self.active_channels.keys())

    def connection_count(self, user_id: str) -> int:
        """Get number of active channels for a user"""
        return len(self.active_channels.get(str(user_id), ()))

    def total_connections(self) -> int:
        """Get total number of joined channels"""
        return sum(len(channels) for channels in self.active_channels.values())
