"""Events consumed by the gitolite resync subsystem."""
import uuid
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class AddCredential:
    owner_id: uuid.UUID

    command = "add_ssh_key"

    def to_payload(self) -> dict[str, Any]:
        return {"command": self.command, "object": str(self.owner_id)}


@dataclass(frozen=True)
class DeleteCredential:
    """Snapshot of a key taken before it is deleted."""
    identifier: str
    key: str
    owner_tag: str
    location_tag: str

    command = "delete_ssh_key"

    def to_payload(self) -> dict[str, Any]:
        return {"command": self.command, "object": asdict(self)}


SyncEvent = AddCredential | DeleteCredential
