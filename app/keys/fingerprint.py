"""Structural validation of key material with ssh-keygen."""
import asyncio
import os
import tempfile
from abc import ABC, abstractmethod

from app.config import settings
from app.core.exceptions import ExternalToolError, MalformedKeyError
from app.core.logging import get_logger

logger = get_logger(__name__)


class KeyFormatChecker(ABC):
    """Confirms that key text is a well-formed SSH public key."""

    @abstractmethod
    async def check(self, key: str) -> str:
        """
        Return the key fingerprint.
        Raises MalformedKeyError if the key is rejected, ExternalToolError if
        the check itself could not be carried out.
        """
        ...


class SshKeygenChecker(KeyFormatChecker):
    """Runs `ssh-keygen -l -f <tmpfile>` with a bounded timeout. Never retried."""

    def __init__(self, command: str | None = None, timeout: float | None = None):
        self.command = command or settings.ssh_keygen_command
        self.timeout = timeout if timeout is not None else settings.ssh_keygen_timeout_seconds

    async def check(self, key: str) -> str:
        with tempfile.TemporaryDirectory(prefix="sshkey-") as tmpdir:
            path = os.path.join(tmpdir, "key.pub")
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(key)
            return await self._run(path)

    async def _run(self, path: str) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.command, "-l", "-f", path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("ssh_keygen_unavailable", command=self.command, error=str(exc))
            raise ExternalToolError(f"Could not run {self.command}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            logger.error("ssh_keygen_timeout", command=self.command, timeout=self.timeout)
            raise ExternalToolError(f"{self.command} timed out after {self.timeout}s") from exc

        if proc.returncode != 0:
            logger.info(
                "ssh_keygen_rejected_key",
                returncode=proc.returncode,
                stderr=stderr.decode(errors="replace").strip(),
            )
            raise MalformedKeyError()
        return stdout.decode(errors="replace").strip()


def default_checker() -> KeyFormatChecker:
    return SshKeygenChecker()
