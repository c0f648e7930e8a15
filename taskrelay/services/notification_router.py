import asyncio
import logging
from functools import partial
from typing import Dict

from taskrelay.schemas.events import NotificationEvent, wire_message
from taskrelay.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class NotificationRouter:
    """
    Delivers task events to every channel joined under the target user.

    ``deliver`` only queues the event and returns; a background worker per
    user pushes queued events to the user's channels one at a time, so a slow
    socket never holds up the action that produced the event and a user never
    sees two events out of emission order. Events for a user with no joined
    channel are dropped; there is no retry.
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry
        self._queues: Dict[str, asyncio.Queue] = {}
        self._workers: Dict[str, asyncio.Task] = {}

    async def deliver(self, event: NotificationEvent) -> bool:
        """Queue an event for the target user, returning False when it was dropped"""
        user_id = event.target_user_id
        if not self.registry.list_channels_for(user_id):
            logger.debug(f"User {user_id} not connected, dropping {event.event_name}")
            return False

        queue = self._queues.get(user_id)
        if queue is None:
            queue = self._queues[user_id] = asyncio.Queue()
        queue.put_nowait(event)

        if user_id not in self._workers:
            worker = asyncio.create_task(self._drain(user_id, queue))
            worker.add_done_callback(partial(self._worker_done, user_id))
            self._workers[user_id] = worker
        return True

    async def flush(self) -> None:
        """Wait until every queued event has been pushed"""
        while self._workers:
            await asyncio.wait(list(self._workers.values()))

    async def stop(self) -> None:
        """Cancel pending deliveries"""
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        for worker in workers:
            try:
                await worker
            except asyncio.CancelledError:
                pass
        logger.info(f"Notification router stopped, cancelled {len(workers)} workers")

    async def _drain(self, user_id: str, queue: asyncio.Queue) -> None:
        try:
            while not queue.empty():
                event = queue.get_nowait()
                try:
                    await self._push(user_id, event)
                except Exception:
                    logger.exception(f"Error delivering {event.event_name} to user {user_id}")
                finally:
                    queue.task_done()
        finally:
            # No await between the empty check and here, so later events start a new worker
            if self._queues.get(user_id) is queue:
                del self._queues[user_id]
                self._workers.pop(user_id, None)

    async def _push(self, user_id: str, event: NotificationEvent) -> int:
        # Membership may have changed while the event waited in the queue
        channels = self.registry.list_channels_for(user_id)
        if not channels:
            logger.debug(f"User {user_id} left before {event.event_name} was sent, dropping")
            return 0

        message = wire_message(event)
        results = await asyncio.gather(
            *(channel.transport.send(message) for channel in channels),
            return_exceptions=True,
        )

        delivered = 0
        for channel, result in zip(channels, results):
            if isinstance(result, Exception):
                logger.error(f"Error sending {event.event_name} to user {user_id} on channel {channel.id}: {result}")
                # Clean up broken channel
                self.registry.disconnect(channel)
            else:
                delivered += 1

        logger.info(f"Delivered {event.event_name} to user {user_id} on {delivered}/{len(channels)} channels")
        return delivered

    def _worker_done(self, user_id: str, worker: asyncio.Task) -> None:
        if not worker.cancelled() and worker.exception() is not None:
            logger.error(f"Delivery worker for user {user_id} failed: {worker.exception()!r}")
