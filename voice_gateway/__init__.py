"""
Streaming Voice Gateway
=======================

Bridges a bidirectional audio stream (telephony media stream or browser
audio socket) with streaming speech-to-text, single-shot response
generation and streaming text-to-speech.

Architecture:
    Audio frames
         ↓
    [Speech-to-Text] ──→ [Utterance Gate]
                               ↓
                     [Response Generator]
                               ↓
                     [Synthesis Dispatcher]
                        ↙             ↘
          [Fast Pass-Through]   [Streaming Synthesis]
                        ↘             ↙
                      Transport (audio / control)
"""

__version__ = "1.0.0"
