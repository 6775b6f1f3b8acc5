"""Completion watcher package exports."""

from completion_watcher.adapters.log_scanner import LogScanner, ScanReport
from completion_watcher.adapters.solana_rpc_client import SolanaRpcLogSource
from completion_watcher.domain.exceptions import (
    AwaitCancelledError,
    AwaitTimeoutError,
    CompletionWatcherError,
)
from completion_watcher.domain.models import (
    CandidateEvent,
    ConfirmationLevel,
    Found,
    PollOutcome,
    TimedOut,
    WatchConfig,
)
from completion_watcher.services.event_decoder import EventDecoder, decode_event_line
from completion_watcher.services.handle_codec import (
    decode_handle,
    encode_handle,
    random_handle,
)
from completion_watcher.services.matcher import MatchKey, matches
from completion_watcher.use_cases.await_completion import CompletionWatcher

__all__ = [
    "AwaitCancelledError",
    "AwaitTimeoutError",
    "CandidateEvent",
    "CompletionWatcher",
    "CompletionWatcherError",
    "ConfirmationLevel",
    "EventDecoder",
    "Found",
    "LogScanner",
    "MatchKey",
    "PollOutcome",
    "ScanReport",
    "SolanaRpcLogSource",
    "TimedOut",
    "WatchConfig",
    "decode_event_line",
    "decode_handle",
    "encode_handle",
    "matches",
    "random_handle",
]
