"""
Real-time change feed

Services publish a small change event after each committed write to
appointments, notifications, messages and payments. WebSocket clients
subscribe to the channels they are allowed to see and re-fetch the affected
data when an event arrives. Events are not stored: a client that is not
connected simply misses them.

Channels:
    user:{user_id}      everything addressed to one user
    doctor:{doctor_id}  appointment changes for a doctor's schedule
    staff               clinic-wide changes for staff and admins
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


STAFF_CHANNEL = "staff"


def user_channel(user_id: int) -> str:
    return f"user:{user_id}"


def doctor_channel(doctor_id: int) -> str:
    return f"doctor:{doctor_id}"


class ChangeFeed:
    """In-process registry of subscriber queues keyed by channel"""

    def __init__(self):
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        # Loop each queue was created on, events from other threads are handed over to it
        self._loops: dict[int, asyncio.AbstractEventLoop] = {}

    def subscribe(self, channels: Iterable[str]) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        try:
            self._loops[id(queue)] = asyncio.get_running_loop()
        except RuntimeError:
            pass
        for channel in channels:
            self._subscribers[channel].add(queue)
        logger.debug(f"📡 Subscribed to {list(channels)}")
        return queue

    def unsubscribe(self, queue: asyncio.Queue, channels: Iterable[str]) -> None:
        self._loops.pop(id(queue), None)
        for channel in channels:
            subscribers = self._subscribers.get(channel)
            if not subscribers:
                continue
            subscribers.discard(queue)
            if not subscribers:
                del self._subscribers[channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    def publish(
        self,
        channels: Iterable[str],
        table: str,
        change: ChangeType,
        record_id: Optional[int],
        data: Optional[dict[str, Any]] = None,
    ) -> int:
        """
        Push a change event to every queue subscribed to any of the channels.

        A queue subscribed to several of the channels receives the event once.

        Returns:
            Number of subscribers the event was delivered to
        """
        event = {
            "table": table,
            "event": change.value,
            "record_id": record_id,
            "data": data or {},
            "timestamp": datetime.utcnow().isoformat(),
        }

        delivered: set[int] = set()
        for channel in channels:
            for queue in list(self._subscribers.get(channel, ())):
                if id(queue) in delivered:
                    continue
                self._deliver(queue, event)
                delivered.add(id(queue))

        if delivered:
            logger.debug(f"📣 {table} {change.value} #{record_id} delivered to {len(delivered)} subscriber(s)")
        return len(delivered)

    def _deliver(self, queue: asyncio.Queue, event: dict) -> None:
        loop = self._loops.get(id(queue))
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if loop is None or loop is running:
            queue.put_nowait(event)
        else:
            loop.call_soon_threadsafe(queue.put_nowait, event)


change_feed = ChangeFeed()


def publish_appointment_change(appointment, change: ChangeType = ChangeType.UPDATE) -> int:
    """Notify the patient, the doctor and staff that an appointment changed"""
    channels = [doctor_channel(appointment.doctor_id), STAFF_CHANNEL]
    if appointment.patient is not None:
        channels.append(user_channel(appointment.patient.user_id))
    if appointment.doctor is not None:
        channels.append(user_channel(appointment.doctor.user_id))

    return change_feed.publish(
        channels,
        "appointments",
        change,
        appointment.id,
        {"status": appointment.status},
    )
