"""Factory for creating log source instances."""

from completion_watcher.adapters.solana_rpc_client import SolanaRpcLogSource
from completion_watcher.config.logging_config import get_logger
from completion_watcher.config.settings import Settings
from completion_watcher.domain.protocols import LogSourceProtocol

logger = get_logger(__name__)


def create_log_source(settings: Settings) -> LogSourceProtocol:
    """Create the log source described by ``settings``.

    Raises:
        ValueError: If the RPC URL is not an http(s) endpoint
    """
    if not settings.rpc_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Unsupported RPC URL: {settings.rpc_url}. Must be an http(s) endpoint"
        )

    logger.info(
        "log_source_rpc_selected",
        rpc_url=settings.rpc_url,
        timeout_seconds=settings.rpc_timeout_seconds,
    )
    return SolanaRpcLogSource(
        settings.rpc_url, timeout_seconds=settings.rpc_timeout_seconds
    )
