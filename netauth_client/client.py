"""
Identity service clients - look up entities, groups, keys and passwords.

The IdentityService interface is what the authorization gate talks to.
Every operation raises IdentityServiceError when the service does not
answer with OK.

Implementations:
- StaticIdentityService: In-memory entities (for testing or simple setups)
- NetAuthClient: JSON-over-HTTP client for a NetAuth server
"""

import logging
import ssl
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from .models import (
    ClientInfo,
    ClientInitError,
    Entity,
    EntityMeta,
    Group,
    IdentityServiceError,
    ServiceStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1729
DEFAULT_TIMEOUT = 5.0
RPC_PREFIX = "/netauth.v2.NetAuth2"


class IdentityService(ABC):
    """
    Abstract identity service - plug in any backend for entity information.

    Can be used as an async context manager, which calls start() and
    stop() around the block.
    """

    @abstractmethod
    async def entity_info(self, name: str) -> Entity:
        """
        Look up an entity by name.

        Raises:
            IdentityServiceError: NOT_FOUND if there is no such entity,
                or any other status the service reports
        """
        pass

    @abstractmethod
    async def entity_groups(self, name: str) -> List[Group]:
        """Get the groups the entity is a member of."""
        pass

    @abstractmethod
    async def entity_keys(
        self,
        name: str,
        mode: str = "READ",
        key_type: str = "",
    ) -> Dict[str, List[str]]:
        """
        Get the entity's keys grouped by key type.

        Args:
            name: Entity name
            mode: Access mode, "READ" for lookups
            key_type: Restrict to one key type (e.g. "SSH"), "" for all

        Returns:
            Mapping of key type to the keys of that type, in service order
        """
        pass

    @abstractmethod
    async def auth_entity(self, name: str, secret: str) -> None:
        """
        Verify an entity's secret.

        Returns normally on success; raises IdentityServiceError otherwise.
        """
        pass

    async def start(self) -> None:
        """Start the client (e.g., open connections)."""
        pass

    async def stop(self) -> None:
        """Stop the client (e.g., close connections)."""
        pass

    async def __aenter__(self) -> "IdentityService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


class StaticIdentityService(IdentityService):
    """
    In-memory identity service.

    Use this for:
    - Testing
    - Simple setups with a handful of accounts

    Example:
        service = StaticIdentityService()
        service.add_entity(
            "alice",
            number=1000,
            secret="hunter2",
            groups=["users"],
            keys={"SSH": ["ssh-ed25519 AAAA... alice@laptop"]},
        )
    """

    def __init__(self):
        self.entities: Dict[str, Entity] = {}
        self.secrets: Dict[str, str] = {}
        self.groups: Dict[str, List[str]] = {}
        self.keys: Dict[str, Dict[str, List[str]]] = {}

    def add_entity(
        self,
        name: str,
        number: int = 0,
        secret: Optional[str] = None,
        locked: bool = False,
        groups: Optional[Iterable[str]] = None,
        keys: Optional[Dict[str, List[str]]] = None,
    ) -> Entity:
        """Add or replace an entity."""
        entity = Entity(id=name, number=number, meta=EntityMeta(locked=locked))
        self.entities[name] = entity
        if secret is not None:
            self.secrets[name] = secret
        self.groups[name] = list(groups or [])
        self.keys[name] = {k: list(v) for k, v in (keys or {}).items()}
        logger.debug("Added entity: %s", name)
        return entity

    def remove_entity(self, name: str) -> bool:
        """Remove an entity."""
        if name not in self.entities:
            return False
        del self.entities[name]
        self.secrets.pop(name, None)
        self.groups.pop(name, None)
        self.keys.pop(name, None)
        logger.debug("Removed entity: %s", name)
        return True

    def _require(self, name: str) -> Entity:
        entity = self.entities.get(name)
        if entity is None:
            raise IdentityServiceError(ServiceStatus.NOT_FOUND, f"no entity {name!r}")
        return entity

    async def entity_info(self, name: str) -> Entity:
        return self._require(name)

    async def entity_groups(self, name: str) -> List[Group]:
        self._require(name)
        return [Group(name=g) for g in self.groups.get(name, [])]

    async def entity_keys(
        self,
        name: str,
        mode: str = "READ",
        key_type: str = "",
    ) -> Dict[str, List[str]]:
        self._require(name)
        keys = self.keys.get(name, {})
        if key_type:
            return {key_type: list(keys[key_type])} if key_type in keys else {}
        return {k: list(v) for k, v in keys.items()}

    async def auth_entity(self, name: str, secret: str) -> None:
        self._require(name)
        expected = self.secrets.get(name)
        if expected is None or expected != secret:
            raise IdentityServiceError(ServiceStatus.UNAUTHENTICATED, "bad credentials")


# HTTP status -> service status when the body carries no error code
_HTTP_STATUS_MAP = {
    400: ServiceStatus.INVALID_ARGUMENT,
    401: ServiceStatus.UNAUTHENTICATED,
    403: ServiceStatus.PERMISSION_DENIED,
    404: ServiceStatus.UNIMPLEMENTED,
    408: ServiceStatus.DEADLINE_EXCEEDED,
    429: ServiceStatus.UNAVAILABLE,
    502: ServiceStatus.UNAVAILABLE,
    503: ServiceStatus.UNAVAILABLE,
    504: ServiceStatus.DEADLINE_EXCEEDED,
}


class NetAuthClient(IdentityService):
    """
    Identity service client for a NetAuth server.

    Each operation is one unary call: POST /netauth.v2.NetAuth2/<Method>
    with a JSON request body. Successful calls answer 200 with a JSON
    body; failed calls answer with {"code": "<status>", "message": "..."}.

    Example:
        client = NetAuthClient(server="netauth.example.com", service_name="sftpgo")
        async with client:
            entity = await client.entity_info("alice")
    """

    def __init__(
        self,
        server: Optional[str],
        port: int = DEFAULT_PORT,
        tls: bool = True,
        certificate: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        service_name: str = "sftpgo",
        client_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client; no connection is made until start().

        Args:
            server: Host name of the NetAuth server (required)
            port: Server port
            tls: Use https; plain http when False
            certificate: CA bundle used to verify the server
            timeout: Per-request timeout in seconds
            service_name: Service name sent with every request
            client_id: Client identifier, the host name when None
            transport: Custom httpx transport (tests)

        Raises:
            ClientInitError: If the configuration cannot produce a client
        """
        if not server:
            raise ClientInitError("no NetAuth server configured")
        if not isinstance(port, int) or not 0 < port < 65536:
            raise ClientInitError(f"invalid NetAuth port: {port!r}")

        scheme = "https" if tls else "http"
        self.base_url = f"{scheme}://{server}:{port}"
        try:
            url = httpx.URL(self.base_url)
        except httpx.InvalidURL as e:
            raise ClientInitError(f"invalid NetAuth server {server!r}: {e}") from e
        if url.port != port or url.path not in ("", "/"):
            raise ClientInitError(f"invalid NetAuth server {server!r}: expected a bare host name")
        self.timeout = timeout
        self.verify: Any = tls
        if tls and certificate:
            try:
                self.verify = ssl.create_default_context(cafile=certificate)
            except (OSError, ssl.SSLError) as e:
                raise ClientInitError(f"cannot load CA certificate {certificate}: {e}") from e
        self.info = ClientInfo(service=service_name)
        if client_id:
            self.info.id = client_id
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Open the HTTP connection pool."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            verify=self.verify,
            transport=self._transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        logger.debug("NetAuth client connected to %s", self.base_url)

    async def stop(self) -> None:
        """Close the HTTP connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.debug("NetAuth client closed")

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Run one unary call and return the decoded response body."""
        if self._client is None:
            await self.start()

        body = {"Info": self.info.model_dump(by_alias=True), **payload}
        try:
            response = await self._client.post(f"{RPC_PREFIX}/{method}", json=body)
        except httpx.TimeoutException as e:
            raise IdentityServiceError(ServiceStatus.DEADLINE_EXCEEDED, str(e)) from e
        except httpx.HTTPError as e:
            raise IdentityServiceError(ServiceStatus.UNAVAILABLE, str(e)) from e

        if response.status_code != 200:
            raise self._error_from_response(response)

        try:
            data = response.json()
        except ValueError as e:
            raise IdentityServiceError(
                ServiceStatus.INTERNAL, f"{method}: undecodable response"
            ) from e
        if not isinstance(data, dict):
            raise IdentityServiceError(ServiceStatus.INTERNAL, f"{method}: unexpected response")
        return data

    @staticmethod
    def _error_from_response(response: httpx.Response) -> IdentityServiceError:
        status = _HTTP_STATUS_MAP.get(response.status_code, ServiceStatus.UNKNOWN)
        message = response.reason_phrase or ""
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("code"):
            status = ServiceStatus.from_wire(data["code"])
            message = str(data.get("message", message))
        return IdentityServiceError(status, message)

    async def entity_info(self, name: str) -> Entity:
        data = await self._call("EntityInfo", {"Entity": {"ID": name}})
        entities = data.get("Entities") or []
        if not entities:
            raise IdentityServiceError(ServiceStatus.NOT_FOUND, f"no entity {name!r}")
        try:
            return Entity.model_validate(entities[0])
        except ValidationError as e:
            raise IdentityServiceError(ServiceStatus.INTERNAL, str(e)) from e

    async def entity_groups(self, name: str) -> List[Group]:
        data = await self._call("EntityGroups", {"Entity": {"ID": name}})
        try:
            return [Group.model_validate(g) for g in data.get("Groups") or []]
        except ValidationError as e:
            raise IdentityServiceError(ServiceStatus.INTERNAL, str(e)) from e

    async def entity_keys(
        self,
        name: str,
        mode: str = "READ",
        key_type: str = "",
    ) -> Dict[str, List[str]]:
        data = await self._call(
            "EntityKeys",
            {
                "Entity": {"ID": name},
                "Action": mode,
                "Type": key_type,
                "Key": "",
            },
        )
        return parse_keys(data.get("Strings") or [])

    async def auth_entity(self, name: str, secret: str) -> None:
        await self._call("AuthEntity", {"Entity": {"ID": name, "secret": secret}})


def parse_keys(strings: Iterable[Any]) -> Dict[str, List[str]]:
    """
    Group "TYPE:key" strings by type, keeping service order.

    Entries without a ':' separator are dropped.
    """
    out: Dict[str, List[str]] = {}
    for item in strings:
        if not isinstance(item, str) or ":" not in item:
            logger.debug("Skipping malformed key entry")
            continue
        key_type, key = item.split(":", 1)
        out.setdefault(key_type, []).append(key)
    return out
