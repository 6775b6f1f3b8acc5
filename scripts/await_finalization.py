"""Wait for a computation's finalize event and print the transaction signature.

Example:
    python scripts/await_finalization.py 1234605616436508433 \
        --emitter <MXE program address> --listing-address <cluster program address>
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from completion_watcher.adapters.log_source_factory import create_log_source
from completion_watcher.config.logging_config import get_logger
from completion_watcher.config.settings import Settings, get_settings
from completion_watcher.domain.exceptions import AwaitCancelledError, ValidationError
from completion_watcher.domain.models import ConfirmationLevel, Found, WatchConfig
from completion_watcher.use_cases.await_completion import CompletionWatcher
from scripts import watch_runtime

logger = get_logger(__name__)

EXIT_FOUND = 0
EXIT_CONFIG_ERROR = 1
EXIT_TIMED_OUT = 2
EXIT_CANCELLED = 130


def _handle(value: str) -> int:
    return int(value, 0)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Wait for the finalize-computation event of a request handle"
    )
    parser.add_argument(
        "handle",
        type=_handle,
        help="Computation offset (decimal or 0x-prefixed hex)",
    )
    parser.add_argument("--emitter", help="Emitter (MXE program) address")
    parser.add_argument(
        "--listing-address",
        help="Address whose recent transactions are scanned (default: emitter)",
    )
    parser.add_argument("--window-size", type=int, help="Transactions per attempt")
    parser.add_argument(
        "--poll-interval-seconds", type=float, help="Delay between attempts"
    )
    parser.add_argument("--max-attempts", type=int, help="Attempt ceiling")
    parser.add_argument(
        "--timeout-seconds", type=float, help="Wall-clock budget for the await"
    )
    parser.add_argument(
        "--confirmation-level",
        choices=[level.value for level in ConfirmationLevel],
        help="Commitment for fetched transactions",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs in JSON format",
    )
    return parser.parse_args(argv)


def build_config(settings: Settings, args: argparse.Namespace) -> WatchConfig:
    overrides = {
        "window_size": args.window_size,
        "poll_interval_seconds": args.poll_interval_seconds,
        "max_attempts": args.max_attempts,
        "timeout_seconds": args.timeout_seconds,
        "confirmation_level": args.confirmation_level,
    }
    base = WatchConfig.from_settings(settings).model_dump()
    base.update({key: value for key, value in overrides.items() if value is not None})
    return WatchConfig.model_validate(base)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    settings = get_settings()
    watch_runtime.initialize_runtime(settings, json_logs=args.json_logs)

    emitter = args.emitter or settings.emitter_address
    if not emitter:
        logger.error("emitter_address_missing")
        return EXIT_CONFIG_ERROR
    listing_address = args.listing_address or settings.listing_address

    controller = watch_runtime.create_shutdown_controller()
    watch_runtime.install_signal_handlers(controller)

    try:
        config = build_config(settings, args)
        log_source = create_log_source(settings)
    except ValueError as exc:
        logger.error("watcher_configuration_invalid", error=str(exc))
        return EXIT_CONFIG_ERROR

    watcher = CompletionWatcher(log_source)
    try:
        outcome = watcher.await_completion(
            args.handle,
            emitter,
            config,
            listing_address=listing_address,
            cancel_event=controller.event,
        )
    except ValidationError as exc:
        logger.error("watcher_input_invalid", error=str(exc))
        return EXIT_CONFIG_ERROR
    except AwaitCancelledError as exc:
        logger.info("watcher_cancelled", attempts=exc.attempts)
        return EXIT_CANCELLED
    finally:
        close = getattr(log_source, "close", None)
        if callable(close):
            close()

    if isinstance(outcome, Found):
        print(outcome.container_id)
        return EXIT_FOUND

    logger.error(
        "computation_finalization_timed_out",
        handle=outcome.handle,
        attempts=outcome.attempts,
        reason=outcome.reason,
    )
    return EXIT_TIMED_OUT


if __name__ == "__main__":
    raise SystemExit(main())
