from __future__ import annotations

import threading
from types import SimpleNamespace

from completion_watcher.domain.exceptions import AwaitCancelledError, InvalidAddressError
from completion_watcher.domain.models import ConfirmationLevel, Found, TimedOut


def _settings(**overrides) -> SimpleNamespace:
    values = dict(
        log_level="INFO",
        json_logs=False,
        metrics_enabled=False,
        rpc_url="http://127.0.0.1:8899",
        rpc_timeout_seconds=10.0,
        emitter_address="Emitter111",
        listing_address=None,
        window_size=50,
        poll_interval_seconds=1.0,
        max_attempts=120,
        confirmation_level=ConfirmationLevel.CONFIRMED,
        timeout_seconds=None,
        transient_backoff_factor=2.0,
        max_backoff_seconds=30.0,
        max_lines_per_container=512,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _load_module(mocker, settings: SimpleNamespace):
    module = __import__("scripts.await_finalization", fromlist=["main"])

    mocker.patch.object(module, "get_settings", return_value=settings)
    mocker.patch.object(module.watch_runtime, "initialize_runtime")
    mocker.patch.object(
        module.watch_runtime,
        "create_shutdown_controller",
        return_value=SimpleNamespace(event=threading.Event()),
    )
    mocker.patch.object(module.watch_runtime, "install_signal_handlers")
    log_source = mocker.Mock()
    mocker.patch.object(module, "create_log_source", return_value=log_source)
    watcher = mocker.Mock()
    mocker.patch.object(module, "CompletionWatcher", return_value=watcher)
    return module, watcher, log_source


def test_prints_container_id_when_found(mocker, capsys) -> None:
    module, watcher, log_source = _load_module(mocker, _settings())
    watcher.await_completion.return_value = Found(
        handle=42, container_id="5sig", attempts=1
    )

    exit_code = module.main(["42", "--listing-address", "Cluster111", "--max-attempts", "5"])

    assert exit_code == module.EXIT_FOUND
    assert capsys.readouterr().out.strip() == "5sig"
    args, kwargs = watcher.await_completion.call_args
    assert args[0] == 42
    assert args[1] == "Emitter111"
    assert args[2].max_attempts == 5
    assert args[2].window_size == 50
    assert kwargs["listing_address"] == "Cluster111"
    log_source.close.assert_called_once_with()


def test_hex_handle_and_cli_emitter(mocker) -> None:
    module, watcher, _ = _load_module(mocker, _settings(emitter_address=None))
    watcher.await_completion.return_value = Found(
        handle=0x10, container_id="sig", attempts=1
    )

    exit_code = module.main(["0x10", "--emitter", "Cli111", "--confirmation-level", "finalized"])

    assert exit_code == module.EXIT_FOUND
    args, _ = watcher.await_completion.call_args
    assert args[0] == 16
    assert args[1] == "Cli111"
    assert args[2].confirmation_level is ConfirmationLevel.FINALIZED


def test_timed_out_exit_code(mocker) -> None:
    module, watcher, log_source = _load_module(mocker, _settings())
    watcher.await_completion.return_value = TimedOut(
        handle=7, attempts=120, reason="max_attempts"
    )

    assert module.main(["7"]) == module.EXIT_TIMED_OUT
    log_source.close.assert_called_once_with()


def test_cancelled_exit_code(mocker) -> None:
    module, watcher, log_source = _load_module(mocker, _settings())
    watcher.await_completion.side_effect = AwaitCancelledError(7, 2)

    assert module.main(["7"]) == module.EXIT_CANCELLED
    log_source.close.assert_called_once_with()


def test_missing_emitter_is_configuration_error(mocker) -> None:
    module, watcher, _ = _load_module(mocker, _settings(emitter_address=None))

    assert module.main(["7"]) == module.EXIT_CONFIG_ERROR
    watcher.await_completion.assert_not_called()


def test_invalid_emitter_is_configuration_error(mocker) -> None:
    module, watcher, _ = _load_module(mocker, _settings())
    watcher.await_completion.side_effect = InvalidAddressError("bad emitter")

    assert module.main(["7"]) == module.EXIT_CONFIG_ERROR


def test_invalid_override_is_configuration_error(mocker) -> None:
    module, watcher, _ = _load_module(mocker, _settings())

    assert module.main(["7", "--window-size", "0"]) == module.EXIT_CONFIG_ERROR
    watcher.await_completion.assert_not_called()
