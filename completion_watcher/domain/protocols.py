"""Protocol definitions for dependency inversion.

These abstract interfaces define contracts that adapters must implement.
"""

from typing import Protocol, runtime_checkable

from completion_watcher.domain.models import ConfirmationLevel, ContainerContent


@runtime_checkable
class LogSourceProtocol(Protocol):
    """Read-only access to the public event log."""

    def list_recent_containers(self, address: str, limit: int) -> list[str]:
        """List identifiers of the most recent containers touching ``address``.

        Args:
            address: Account whose containers are listed
            limit: Maximum identifiers to return

        Returns:
            Container identifiers, most recent first

        Raises:
            LogSourceError: On transport or protocol errors
            RateLimitError: On rate limit exceeded
        """
        ...

    def fetch_container_content(
        self, container_id: str, confirmation_level: ConfirmationLevel
    ) -> ContainerContent:
        """Fetch the log lines of one container.

        Args:
            container_id: Identifier from ``list_recent_containers``
            confirmation_level: Required commitment of the returned content

        Returns:
            Container content; ``found`` is False when not yet visible

        Raises:
            LogSourceError: On transport or protocol errors
            RateLimitError: On rate limit exceeded
        """
        ...


__all__ = ["LogSourceProtocol"]
