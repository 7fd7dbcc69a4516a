"""
Entry point for the SFTPGo external authentication hook.

Usage:
    sftpgo-netauth [--config PATH] [--verbose] [--log-level LEVEL] [--env-file PATH]

SFTPGo runs the hook once per login attempt with these variables set:
    SFTPGO_AUTHD_USERNAME        - Account name
    SFTPGO_AUTHD_PASSWORD        - Password (password logins)
    SFTPGO_AUTHD_PUBLIC_KEY      - Public key (key logins)
    SFTPGO_NETAUTH_REQUIREGROUP  - Optional group the account must be in
    SFTPGO_NETAUTH_HOMEDIR       - Base directory for home directories

The decision is printed to stdout as one JSON document. Logs go to stderr
and are limited to errors unless --verbose is given.

Exit status is 0 whenever a decision was made (denials included) and 1
when the configuration or the NetAuth client could not be set up.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from netauth_client import ClientInitError, IdentityService, NetAuthClient

from .config import ConfigError, HookConfig, load_config
from .gate import AuthorizationGate
from .models import Credentials, SFTPGoUser

logger = logging.getLogger("sftpgo_hook")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="sftpgo-netauth",
        description="SFTPGo external authentication hook backed by NetAuth",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Config files are searched as config.yaml, config.yml or config.toml in
./, $HOME/.netauth/ and /etc/netauth/ unless --config is given.
        """,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Config file to use",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show logs",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Logging level with --verbose (default: info)",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Load extra environment variables from this file (existing variables win)",
    )
    return parser.parse_args(argv)


def setup_logging(verbose: bool, level: str) -> None:
    """Log to stderr; only errors unless verbose."""
    logging.basicConfig(
        level=getattr(logging, level.upper()) if verbose else logging.ERROR,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def emit(user: SFTPGoUser) -> None:
    """Print the user document for SFTPGo."""
    print(user.to_json(), flush=True)


def create_client(config: HookConfig) -> IdentityService:
    """Build the NetAuth client from the hook configuration."""
    return NetAuthClient(
        server=config.server,
        port=config.port,
        tls=config.tls_enabled,
        certificate=config.certificate,
        timeout=config.timeout,
        service_name=config.service_name,
        client_id=config.client_id,
    )


async def run(client: IdentityService, credentials: Credentials, home_base: str) -> SFTPGoUser:
    """Run the gate for one login attempt and return the user to emit."""
    async with client:
        gate = AuthorizationGate(client, home_base=home_base)
        decision = await gate.authorize(credentials)
    return decision.user


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_level)

    if args.env_file:
        load_dotenv(args.env_file, override=False)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("Error reading config: %s", e)
        emit(SFTPGoUser.denied())
        return 1

    try:
        client = create_client(config)
    except ClientInitError as e:
        logger.warning("Error during client initialization: %s", e)
        emit(SFTPGoUser.denied())
        return 1

    credentials = Credentials.from_env()
    logger.debug("Authenticating %r", credentials)

    user = asyncio.run(run(client, credentials, config.home_base))
    emit(user)
    return 0


if __name__ == "__main__":
    sys.exit(main())
