"""
Identity service client for NetAuth.

Looks up entities, group memberships and keys, and verifies passwords.

Architecture:
    ┌─────────────────────────────────────────────────────────────┐
    │                      IdentityService                         │
    ├─────────────────────────────────────────────────────────────┤
    │  entity_info     name -> Entity (number, locked flag)       │
    │  entity_groups   name -> [Group]                            │
    │  entity_keys     name, mode, type -> {type: [key, ...]}     │
    │  auth_entity     name, secret -> OK or IdentityServiceError │
    ├─────────────────────────────────────────────────────────────┤
    │  StaticIdentityService   in-memory                          │
    │  NetAuthClient           JSON over HTTP (httpx)             │
    └─────────────────────────────────────────────────────────────┘

Quick Start:
    from netauth_client import NetAuthClient, IdentityServiceError

    client = NetAuthClient(server="netauth.example.com")
    async with client:
        try:
            entity = await client.entity_info("alice")
        except IdentityServiceError as e:
            print(e.status)
"""

# Models
from .models import (
    ServiceStatus,
    IdentityServiceError,
    ClientInitError,
    ClientInfo,
    Entity,
    EntityMeta,
    Group,
)

# Clients
from .client import (
    IdentityService,
    StaticIdentityService,
    NetAuthClient,
    parse_keys,
)

__all__ = [
    # Models
    "ServiceStatus",
    "IdentityServiceError",
    "ClientInitError",
    "ClientInfo",
    "Entity",
    "EntityMeta",
    "Group",
    # Clients
    "IdentityService",
    "StaticIdentityService",
    "NetAuthClient",
    "parse_keys",
]

__version__ = "0.1.0"
