"""Core dispatch logic for pollypy.

This package contains the decision engine shared by every transport:
- Adapter: hook contract, connect/disconnect gate and request dispatch
- Expiration: whether a stale recording may be re-recorded
- Timing: simulated latency for replayed responses
- Replay: conversion between live responses and recording entries

The core never touches the network itself; transports do that through
their hooks.
"""

from pollypy.core.adapter import Adapter, DispatchResult
from pollypy.core.replay import replay_response

__all__ = ["Adapter", "DispatchResult", "replay_response"]
