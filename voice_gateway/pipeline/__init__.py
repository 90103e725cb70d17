"""Conversation pipeline: gating, dispatch and per-connection sessions."""

from voice_gateway.pipeline.dispatcher import DispatchResult, SynthesisDispatcher, SynthesisEngine
from voice_gateway.pipeline.gate import UtteranceGate, should_process
from voice_gateway.pipeline.registry import SessionRegistry
from voice_gateway.pipeline.session import Session

__all__ = [
    "DispatchResult",
    "SynthesisDispatcher",
    "SynthesisEngine",
    "UtteranceGate",
    "should_process",
    "SessionRegistry",
    "Session",
]
