"""Runtime helpers shared by watcher scripts."""

from __future__ import annotations

import signal
import threading
from dataclasses import dataclass
from types import FrameType

from completion_watcher.config.logging_config import get_logger, setup_logging
from completion_watcher.config.settings import Settings
from completion_watcher.observability.metrics import ensure_metrics_exporter

logger = get_logger(__name__)


@dataclass
class _ShutdownController:
    """Cancellation event set from signal handlers."""

    event: threading.Event

    def request(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("shutdown_signal_received", signal=sig_name)
        self.event.set()


def create_shutdown_controller() -> _ShutdownController:
    return _ShutdownController(threading.Event())


def install_signal_handlers(controller: _ShutdownController) -> None:
    """Register SIGTERM/SIGINT handlers that cancel the running await."""

    def _handler(signum: int, frame: FrameType | None) -> None:
        controller.request(signum, frame)

    signal.signal(signal.SIGTERM, _handler)
    signal.signal(signal.SIGINT, _handler)


def initialize_runtime(settings: Settings, *, json_logs: bool = False) -> None:
    """Initialize logging and, when enabled, the metrics exporter."""

    use_json = json_logs or settings.json_logs
    setup_logging(log_level=settings.log_level, json_logs=use_json)
    logger.info("logging_initialized", level=settings.log_level, json_logs=use_json)

    if settings.metrics_enabled:
        ensure_metrics_exporter()


__all__ = [
    "create_shutdown_controller",
    "initialize_runtime",
    "install_signal_handlers",
]
