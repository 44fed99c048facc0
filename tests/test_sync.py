"""Tests for sync event payloads and delivery."""
import uuid

import pytest

from app.sync.events import AddCredential, DeleteCredential
from app.sync.notifier import LoggingSyncNotifier, TemporalSyncNotifier, dispatch_events
from conftest import RecordingNotifier


class _FakeTemporalClient:
    def __init__(self):
        self.started: list[tuple] = []

    async def start_workflow(self, workflow, arg, *, id, task_queue):
        self.started.append((workflow, arg, id, task_queue))


def test_add_credential_payload():
    owner_id = uuid.uuid4()
    assert AddCredential(owner_id=owner_id).to_payload() == {
        "command": "add_ssh_key",
        "object": str(owner_id),
    }


def test_delete_credential_payload():
    event = DeleteCredential(
        identifier="alice@redmine_1_2",
        key="ssh-ed25519 AAAA alice@laptop",
        owner_tag="alice",
        location_tag="redmine_1_2",
    )
    assert event.to_payload() == {
        "command": "delete_ssh_key",
        "object": {
            "identifier": "alice@redmine_1_2",
            "key": "ssh-ed25519 AAAA alice@laptop",
            "owner_tag": "alice",
            "location_tag": "redmine_1_2",
        },
    }


@pytest.mark.asyncio
async def test_temporal_notifier_starts_one_workflow_per_event():
    client = _FakeTemporalClient()
    notifier = TemporalSyncNotifier(client, "gitolite-resync", "ResyncGitoliteWorkflow")
    event = AddCredential(owner_id=uuid.uuid4())

    await notifier.notify(event)

    [(workflow, arg, workflow_id, task_queue)] = client.started
    assert workflow == "ResyncGitoliteWorkflow"
    assert arg == event.to_payload()
    assert workflow_id.startswith("resync-add_ssh_key-")
    assert task_queue == "gitolite-resync"


@pytest.mark.asyncio
async def test_dispatch_continues_after_failure():
    events = [AddCredential(owner_id=uuid.uuid4()), AddCredential(owner_id=uuid.uuid4())]
    assert await dispatch_events(RecordingNotifier(fail=True), events) == 0

    notifier = RecordingNotifier()
    assert await dispatch_events(notifier, events) == 2
    assert notifier.events == events


@pytest.mark.asyncio
async def test_logging_notifier_accepts_events():
    assert await dispatch_events(LoggingSyncNotifier(), [AddCredential(owner_id=uuid.uuid4())]) == 1
