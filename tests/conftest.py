"""
Configuration for pytest tests.
Provides an in-memory identity service and helpers shared by the test modules.
"""

from typing import Dict, List

import pytest

from netauth_client import StaticIdentityService

ALICE_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIAlice alice@laptop"
ALICE_OLD_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQAlice alice@old"
BOB_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIBob bob@desk"


class RecordingIdentityService(StaticIdentityService):
    """StaticIdentityService that records which operations were called."""

    def __init__(self):
        super().__init__()
        self.calls: List[str] = []

    async def entity_info(self, name):
        self.calls.append("entity_info")
        return await super().entity_info(name)

    async def entity_groups(self, name):
        self.calls.append("entity_groups")
        return await super().entity_groups(name)

    async def entity_keys(self, name, mode="READ", key_type=""):
        self.calls.append("entity_keys")
        return await super().entity_keys(name, mode, key_type)

    async def auth_entity(self, name, secret):
        self.calls.append("auth_entity")
        return await super().auth_entity(name, secret)


@pytest.fixture
def service() -> RecordingIdentityService:
    """Identity service with a few known entities."""
    svc = RecordingIdentityService()
    svc.add_entity(
        "alice",
        number=1000,
        secret="correct horse",
        groups=["users", "ops"],
        keys={"SSH": [ALICE_OLD_KEY, ALICE_KEY], "GPG": ["gpg-key"]},
    )
    svc.add_entity(
        "bob",
        number=1001,
        secret="hunter2",
        groups=["users"],
        keys={"SSH": [BOB_KEY]},
    )
    svc.add_entity(
        "mallory",
        number=1002,
        secret="letmein",
        locked=True,
        groups=["ops"],
        keys={"SSH": ["ssh-ed25519 AAAAMallory"]},
    )
    return svc


@pytest.fixture
def hook_env() -> Dict[str, str]:
    """Base environment for a hook invocation."""
    return {
        "SFTPGO_AUTHD_USERNAME": "alice",
        "SFTPGO_AUTHD_PASSWORD": "",
        "SFTPGO_AUTHD_PUBLIC_KEY": "",
        "SFTPGO_NETAUTH_REQUIREGROUP": "",
        "SFTPGO_NETAUTH_HOMEDIR": "/srv/sftp",
    }
