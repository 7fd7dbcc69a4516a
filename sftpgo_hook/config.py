"""
Hook configuration.

Settings are read from a YAML or TOML file, found either by explicit path
or by searching the usual NetAuth locations, then overridden from the
environment.
"""

import logging
import os
import socket
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from netauth_client.client import DEFAULT_PORT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

CONFIG_NAMES = ("config.yaml", "config.yml", "config.toml")

ENV_SERVER = "NETAUTH_SERVER"
ENV_PORT = "NETAUTH_PORT"
ENV_HOMEDIR = "SFTPGO_NETAUTH_HOMEDIR"


class ConfigError(Exception):
    """The configuration could not be found or read."""


def search_paths(environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """Directories searched for a config file, in order."""
    env = os.environ if environ is None else environ
    paths = [Path(".")]
    home = env.get("HOME")
    if home:
        paths.append(Path(home) / ".netauth")
    paths.append(Path("/etc/netauth"))
    return paths


@dataclass
class HookConfig:
    """
    Configuration for the SFTPGo hook.

    Attributes:
        server: NetAuth server host name
        port: NetAuth server port
        tls_enabled: Use TLS to reach the server
        certificate: CA bundle used to verify the server
        timeout: Per-request timeout in seconds
        service_name: Service name reported to NetAuth
        client_id: Client identifier reported to NetAuth
        home_base: Base directory; home dirs are home_base/<username>
        source: File the configuration was read from
    """
    server: Optional[str] = None
    port: int = DEFAULT_PORT
    tls_enabled: bool = True
    certificate: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    service_name: str = "sftpgo"
    client_id: str = field(default_factory=socket.gethostname)
    home_base: str = ""
    source: Optional[Path] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], source: Optional[Path] = None) -> "HookConfig":
        """Build a config from the parsed file contents."""
        core = _section(raw, "core")
        tls = _section(raw, "tls")
        client = _section(raw, "client")
        sftpgo = _section(raw, "sftpgo")

        config = cls(source=source)
        try:
            if core.get("server") is not None:
                config.server = str(core["server"])
            if core.get("port") is not None:
                config.port = int(core["port"])
            if core.get("timeout") is not None:
                config.timeout = float(core["timeout"])
            if tls.get("certificate"):
                config.certificate = str(tls["certificate"])
            if tls.get("disabled") is not None:
                config.tls_enabled = not _as_bool(tls["disabled"])
            if client.get("service"):
                config.service_name = str(client["service"])
            if client.get("id"):
                config.client_id = str(client["id"])
            if sftpgo.get("homedir") is not None:
                config.home_base = str(sftpgo["homedir"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid value in {source or 'config'}: {e}") from e
        return config

    def apply_env(self, environ: Mapping[str, str]) -> "HookConfig":
        """Apply environment overrides in place."""
        if environ.get(ENV_SERVER):
            self.server = environ[ENV_SERVER]
        if environ.get(ENV_PORT):
            try:
                self.port = int(environ[ENV_PORT])
            except ValueError as e:
                raise ConfigError(f"invalid {ENV_PORT}: {environ[ENV_PORT]!r}") from e
        if ENV_HOMEDIR in environ:
            self.home_base = environ[ENV_HOMEDIR]
        return self


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"section {name!r} must be a mapping")
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).lower()
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def find_config(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the first config file on the search path."""
    for directory in search_paths(environ):
        for name in CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    searched = ", ".join(str(p) for p in search_paths(environ))
    raise ConfigError(f"no config file found (searched {searched})")


def read_config_file(path: Path) -> Dict[str, Any]:
    """Parse a YAML or TOML config file."""
    try:
        if path.suffix == ".toml":
            with path.open("rb") as fh:
                raw = tomllib.load(fh)
        else:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    except (yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"cannot parse {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} does not contain a mapping")
    return raw


def load_config(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> HookConfig:
    """
    Load the hook configuration.

    Args:
        path: Explicit config file; the search path is used when None
        environ: Environment for overrides, os.environ when None

    Raises:
        ConfigError: If no file is found or the file is invalid
    """
    env = os.environ if environ is None else environ
    config_path = Path(path) if path else find_config(env)
    raw = read_config_file(config_path)
    config = HookConfig.from_dict(raw, source=config_path).apply_env(env)
    logger.debug("Loaded config from %s", config_path)
    return config
