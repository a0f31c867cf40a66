"""
Listener playback module.

Keeps a local audio output in sync with the station's schedule using the
push channel, with metadata polling as a fallback.
"""

from .audio import AudioOutput, MpvAudioOutput, MpvUnavailableError, check_mpv_available
from .listener import build_reconciler, run_listener
from .push import EventStreamSubscriber, FixedDelayRetry, RetryPolicy, iter_sse_data
from .reconciler import (
    ListenerState,
    PlaybackMode,
    PlaybackReconciler,
    ScheduledAsset,
    TrackInfo,
    parse_started_at,
)

__all__ = [
    "AudioOutput",
    "MpvAudioOutput",
    "MpvUnavailableError",
    "check_mpv_available",
    "EventStreamSubscriber",
    "FixedDelayRetry",
    "RetryPolicy",
    "iter_sse_data",
    "ListenerState",
    "PlaybackMode",
    "PlaybackReconciler",
    "ScheduledAsset",
    "TrackInfo",
    "parse_started_at",
    "build_reconciler",
    "run_listener",
]
