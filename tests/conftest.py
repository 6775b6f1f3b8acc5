"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import threading
from typing import Final

import pytest

from completion_watcher.domain.event_constants import (
    FINALIZE_COMPUTATION_EVENT_DISCRIMINATOR,
)
from completion_watcher.domain.models import (
    ConfirmationLevel,
    ContainerContent,
    WatchConfig,
)
from completion_watcher.services.event_decoder import encode_event_line
from completion_watcher.services.handle_codec import encode_handle

SCENARIO_HANDLE: Final[int] = 0x1122334455667711
SCENARIO_EMITTER: Final[bytes] = bytes([0xAB]) * 32
OTHER_EMITTER: Final[bytes] = bytes([0xCD]) * 32
SCENARIO_DISCRIMINATOR: Final[bytes] = bytes([27, 75, 117, 221, 191, 213, 253, 249])

UNRELATED_LINES: Final[list[str]] = [
    "Program ComputeBudget111111111111111111111111111111 invoke [1]",
    "Program ComputeBudget111111111111111111111111111111 success",
    "Program log: Instruction: CallbackComputation",
    "Program log: computation callback received",
    "Program 11111111111111111111111111111111 consumed 150 of 200000 compute units",
]


def event_line(
    handle: int = SCENARIO_HANDLE,
    emitter: bytes = SCENARIO_EMITTER,
    *,
    discriminator: bytes = FINALIZE_COMPUTATION_EVENT_DISCRIMINATOR,
    trailing: bytes = b"",
) -> str:
    """Framed finalize-computation event line."""
    return encode_event_line(
        encode_handle(handle),
        emitter,
        discriminator=discriminator,
        trailing=trailing,
    )


class StubLogSource:
    """In-memory log source; containers are listed newest first."""

    def __init__(self, containers: dict[str, list[str]] | None = None) -> None:
        self.containers: dict[str, list[str]] = dict(containers or {})
        self.order: list[str] = list(self.containers)
        self.missing: set[str] = set()
        self.list_errors: list[Exception] = []
        self.fetch_errors: dict[str, Exception] = {}
        self.list_calls: list[tuple[str, int]] = []
        self.fetch_calls: list[tuple[str, ConfirmationLevel]] = []
        self._lock = threading.Lock()

    def publish(self, container_id: str, lines: list[str]) -> None:
        with self._lock:
            self.containers[container_id] = list(lines)
            self.order.insert(0, container_id)

    def list_recent_containers(self, address: str, limit: int) -> list[str]:
        with self._lock:
            self.list_calls.append((address, limit))
            if self.list_errors:
                raise self.list_errors.pop(0)
            return self.order[:limit]

    def fetch_container_content(
        self, container_id: str, confirmation_level: ConfirmationLevel
    ) -> ContainerContent:
        with self._lock:
            self.fetch_calls.append((container_id, confirmation_level))
            error = self.fetch_errors.pop(container_id, None)
            if error is not None:
                raise error
            if container_id in self.missing:
                return ContainerContent(found=False)
            return ContainerContent(log_lines=list(self.containers[container_id]))


@pytest.fixture
def stub_source() -> StubLogSource:
    return StubLogSource()


@pytest.fixture
def fast_config() -> WatchConfig:
    """Config that never sleeps between attempts."""
    return WatchConfig(poll_interval_seconds=0.0, max_attempts=3)
