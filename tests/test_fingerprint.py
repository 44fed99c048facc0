"""Tests for the ssh-keygen format checker."""
import os
import shutil

import pytest

from app.core.exceptions import ExternalToolError, MalformedKeyError
from app.keys.fingerprint import SshKeygenChecker
from conftest import make_public_key


def _fake_keygen(tmp_path, body: str) -> str:
    """Write an executable shell script standing in for ssh-keygen."""
    script = tmp_path / "fake-ssh-keygen"
    script.write_text("#!/bin/sh\n" + body)
    os.chmod(script, 0o755)
    return str(script)


@pytest.mark.asyncio
async def test_zero_exit_returns_fingerprint(tmp_path):
    command = _fake_keygen(tmp_path, 'echo "256 SHA256:abc alice@laptop (ED25519)"\n')
    fingerprint = await SshKeygenChecker(command=command, timeout=5).check(make_public_key(1))
    assert fingerprint == "256 SHA256:abc alice@laptop (ED25519)"


@pytest.mark.asyncio
async def test_nonzero_exit_is_malformed_key(tmp_path):
    command = _fake_keygen(tmp_path, 'echo "is not a public key file." >&2\nexit 255\n')
    with pytest.raises(MalformedKeyError):
        await SshKeygenChecker(command=command, timeout=5).check("ssh-rsa garbage")


@pytest.mark.asyncio
async def test_key_file_is_removed_afterwards(tmp_path):
    record = tmp_path / "seen-path"
    command = _fake_keygen(tmp_path, f'echo "$3" > "{record}"\ncat "$3" > "{record}.content"\nexit 1\n')
    with pytest.raises(MalformedKeyError):
        await SshKeygenChecker(command=command, timeout=5).check("ssh-rsa AAAA me")

    seen = record.read_text().strip()
    assert (tmp_path / "seen-path.content").read_text() == "ssh-rsa AAAA me"
    assert not os.path.exists(seen)


@pytest.mark.asyncio
async def test_missing_command_is_external_tool_error(tmp_path):
    checker = SshKeygenChecker(command=str(tmp_path / "does-not-exist"), timeout=5)
    with pytest.raises(ExternalToolError):
        await checker.check(make_public_key(1))


@pytest.mark.asyncio
async def test_timeout_is_external_tool_error(tmp_path):
    command = _fake_keygen(tmp_path, "exec sleep 5\n")
    with pytest.raises(ExternalToolError):
        await SshKeygenChecker(command=command, timeout=0.2).check(make_public_key(1))


@pytest.mark.skipif(shutil.which("ssh-keygen") is None, reason="ssh-keygen not installed")
class TestRealSshKeygen:
    @pytest.mark.asyncio
    async def test_accepts_valid_key(self):
        fingerprint = await SshKeygenChecker(command="ssh-keygen", timeout=10).check(make_public_key(7))
        assert "SHA256:" in fingerprint

    @pytest.mark.asyncio
    async def test_rejects_garbage(self):
        with pytest.raises(MalformedKeyError):
            await SshKeygenChecker(command="ssh-keygen", timeout=10).check("ssh-ed25519 bm90IGEga2V5 x")
