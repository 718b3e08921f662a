"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from cli.config import Config
from cli.gateway_client import GatewayClient
from cli.models import DownloadCommand, InfoCommand, LinkCommand

logger = get_logger(__name__)


_client: Optional[GatewayClient] = None


def get_client() -> GatewayClient:
    """
    Get or create global GatewayClient instance.

    Returns:
        GatewayClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new GatewayClient instance")
        config = Config(Path.home() / '.sharefetch' / 'config.json')
        _client = GatewayClient(config)
    return _client


def handle_info(cmd: InfoCommand, client: Optional[GatewayClient] = None) -> str:
    """
    Handle 'info' command.

    Args:
        cmd: InfoCommand with the share URL
        client: Optional GatewayClient for dependency injection (testing)

    Returns:
        File description or error message
    """
    if client is None:
        client = get_client()
    return client.info(cmd.share_url)


def handle_link(cmd: LinkCommand, client: Optional[GatewayClient] = None) -> str:
    """
    Handle 'link' command.
    """
    if client is None:
        client = get_client()
    return client.link(cmd.share_url)


def handle_download(cmd: DownloadCommand, client: Optional[GatewayClient] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with share URL and optional output path
        client: Optional GatewayClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    if client is None:
        client = get_client()
    return client.download(cmd.share_url, cmd.output_path)


def close_client() -> None:
    """
    Close the global GatewayClient session, if one was created.
    """
    global _client
    if _client is not None:
        logger.debug("Closing GatewayClient session")
        _client.close()
        _client = None
