"""
Data model for the NetAuth identity service.

Provides the status codes, errors and pydantic wire records shared by all
IdentityService implementations.
"""

import socket
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceStatus(str, Enum):
    """
    Standard status codes returned by identity-service calls.

    Values are the lower snake-case wire names used in error bodies.
    Only OK counts as success.
    """
    OK = "ok"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"
    INVALID_ARGUMENT = "invalid_argument"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    PERMISSION_DENIED = "permission_denied"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    FAILED_PRECONDITION = "failed_precondition"
    ABORTED = "aborted"
    OUT_OF_RANGE = "out_of_range"
    UNIMPLEMENTED = "unimplemented"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"
    DATA_LOSS = "data_loss"
    UNAUTHENTICATED = "unauthenticated"

    @classmethod
    def from_wire(cls, code: Optional[str]) -> "ServiceStatus":
        """Parse a wire code, falling back to UNKNOWN."""
        try:
            return cls(str(code).lower())
        except ValueError:
            return cls.UNKNOWN


class IdentityServiceError(Exception):
    """A call to the identity service did not finish with OK."""

    def __init__(self, status: ServiceStatus, message: str = ""):
        self.status = status
        self.message = message
        super().__init__(f"{status.name}: {message}" if message else status.name)


class ClientInitError(Exception):
    """The identity-service client could not be constructed."""


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ClientInfo(_WireModel):
    """
    Identifies this caller to the identity service.

    Attributes:
        service: Name of the service asking (e.g. "sftpgo")
        id: Client identifier, the host name by default
    """
    service: str = Field(default="sftpgo", alias="Service")
    id: str = Field(default_factory=socket.gethostname, alias="ID")


class EntityMeta(_WireModel):
    """Entity metadata; only the lock flag matters here."""
    locked: bool = Field(default=False, alias="Locked")


class Entity(_WireModel):
    """
    Entity record returned by an entity lookup.

    Attributes:
        id: Entity name
        number: Numeric identifier, used as the POSIX uid
        meta: Metadata carrying the locked flag
    """
    id: str = Field(default="", alias="ID")
    number: int = Field(default=0, alias="Number")
    meta: EntityMeta = Field(default_factory=EntityMeta)

    @property
    def locked(self) -> bool:
        return self.meta.locked


class Group(_WireModel):
    """Group record returned by a group-membership lookup."""
    name: str = Field(default="", alias="Name")
    number: int = Field(default=0, alias="Number")
