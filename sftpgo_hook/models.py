"""
Hook input and output models.

Credentials come from the environment SFTPGo sets for external auth hooks;
SFTPGoUser is the JSON document the hook prints back.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, model_serializer

ENV_USERNAME = "SFTPGO_AUTHD_USERNAME"
ENV_PASSWORD = "SFTPGO_AUTHD_PASSWORD"
ENV_PUBLIC_KEY = "SFTPGO_AUTHD_PUBLIC_KEY"
ENV_REQUIRE_GROUP = "SFTPGO_NETAUTH_REQUIREGROUP"

STATUS_ALLOWED = 1


@dataclass(frozen=True)
class Credentials:
    """
    Credentials presented for one login attempt.

    Attributes:
        username: Account name to authenticate
        password: Plaintext password, only used when no public key is given
        public_key: SSH public key presented by the client
        required_group: If set, the entity must belong to this group
    """
    username: str
    password: Optional[str] = None
    public_key: Optional[str] = None
    required_group: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Credentials":
        """Read credentials from SFTPGo's hook environment. Empty values count as absent."""
        env = os.environ if environ is None else environ
        return cls(
            username=env.get(ENV_USERNAME, ""),
            password=env.get(ENV_PASSWORD) or None,
            public_key=env.get(ENV_PUBLIC_KEY) or None,
            required_group=env.get(ENV_REQUIRE_GROUP) or None,
        )

    def __repr__(self) -> str:
        return (
            f"Credentials(username={self.username!r}, "
            f"password={'***' if self.password else None}, "
            f"public_key={'<set>' if self.public_key else None}, "
            f"required_group={self.required_group!r})"
        )


class UserFilters(BaseModel):
    """SFTPGo user filters; only login-method denial is used."""
    denied_login_methods: List[str] = Field(default_factory=list)

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler):
        data = handler(self)
        if not data.get("denied_login_methods"):
            data.pop("denied_login_methods", None)
        return data


class SFTPGoUser(BaseModel):
    """
    Minimal SFTPGo user returned by the hook.

    A document without a truthy status tells SFTPGo to reject the login.
    status, home_dir, uid and gid are left out when empty; permissions is
    always present and is null on denial.
    """
    status: int = 0
    username: str = ""
    home_dir: str = ""
    uid: int = 0
    gid: int = 0
    permissions: Optional[Dict[str, List[str]]] = None
    filters: UserFilters = Field(default_factory=UserFilters)

    @classmethod
    def denied(cls) -> "SFTPGoUser":
        """The empty user that rejects the login."""
        return cls()

    @classmethod
    def allowed(cls, username: str, uid: int, home_dir: str) -> "SFTPGoUser":
        """A user with full access rooted at "/"."""
        return cls(
            status=STATUS_ALLOWED,
            username=username,
            uid=uid,
            home_dir=home_dir,
            permissions={"/": ["*"]},
        )

    @property
    def is_allowed(self) -> bool:
        return self.status == STATUS_ALLOWED

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler):
        data = handler(self)
        for key in ("status", "home_dir", "uid", "gid"):
            if not data.get(key):
                data.pop(key, None)
        return data

    def to_json(self) -> str:
        return self.model_dump_json()


def home_directory(base: str, username: str) -> str:
    """
    Join the home-directory base with the username and clean the result.

    The username is always placed under the base, even when it starts
    with "/". Empty parts are skipped; the result is "" when both are empty.
    """
    joined = "/".join(part for part in (base, username) if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    # normpath keeps exactly two leading slashes
    if cleaned.startswith("//"):
        cleaned = cleaned[1:]
    return cleaned
