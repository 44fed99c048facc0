"""Delivery of sync events to the resync subsystem.

Events are dispatched only after the key change has been committed. Delivery is
fire-and-forget: a failure is logged for operators and never undoes the commit.
"""
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable

from temporalio.client import Client

from app.config import settings
from app.core.logging import get_logger
from app.sync.events import SyncEvent

logger = get_logger(__name__)


class SyncNotifier(ABC):
    """Abstract interface to the gitolite resync subsystem."""

    @abstractmethod
    async def notify(self, event: SyncEvent) -> None:
        ...

    async def close(self) -> None:
        pass


class TemporalSyncNotifier(SyncNotifier):
    """Starts one resync workflow per event on the configured task queue."""

    def __init__(self, client: Client, task_queue: str, workflow_name: str):
        self._client = client
        self.task_queue = task_queue
        self.workflow_name = workflow_name

    @classmethod
    async def connect(cls) -> "TemporalSyncNotifier":
        client = await Client.connect(settings.temporal_host)
        return cls(client, settings.temporal_task_queue, settings.resync_workflow_name)

    async def notify(self, event: SyncEvent) -> None:
        await self._client.start_workflow(
            self.workflow_name,
            event.to_payload(),
            id=f"resync-{event.command}-{uuid.uuid4()}",
            task_queue=self.task_queue,
        )


class LoggingSyncNotifier(SyncNotifier):
    """Used when resync is disabled: records what would have been sent."""

    async def notify(self, event: SyncEvent) -> None:
        logger.info("resync_skipped", command=event.command, payload=event.to_payload())


async def dispatch_events(notifier: SyncNotifier, events: Iterable[SyncEvent]) -> int:
    """Deliver events in order. Returns how many were delivered."""
    delivered = 0
    for event in events:
        try:
            await notifier.notify(event)
        except Exception:
            logger.exception("resync_dispatch_failed", command=event.command, payload=event.to_payload())
            continue
        logger.info("resync_dispatched", command=event.command)
        delivered += 1
    return delivered


async def create_notifier() -> SyncNotifier:
    if not settings.resync_enabled:
        return LoggingSyncNotifier()
    return await TemporalSyncNotifier.connect()
