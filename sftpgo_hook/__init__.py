"""
SFTPGo external authentication hook backed by NetAuth.

Provides:
- Credentials read from SFTPGo's hook environment
- An authorization gate that checks entity, lock, group and one credential
- The SFTPGo user document printed back to the server
- Config file loading and the command line entry point
"""

from .config import HookConfig, ConfigError, load_config
from .models import Credentials, SFTPGoUser, UserFilters, home_directory
from .gate import AuthorizationGate, Decision

__all__ = [
    # Config
    "HookConfig",
    "ConfigError",
    "load_config",
    # Models
    "Credentials",
    "SFTPGoUser",
    "UserFilters",
    "home_directory",
    # Gate
    "AuthorizationGate",
    "Decision",
]

__version__ = "0.1.0"
