"""Response generator adapters."""

from voice_gateway.llm.base import GenerationParams, ResponseGenerator
from voice_gateway.llm.openai import OpenAIResponseGenerator
from voice_gateway.llm.prompts import build_system_prompt

__all__ = [
    "GenerationParams",
    "ResponseGenerator",
    "OpenAIResponseGenerator",
    "build_system_prompt",
]
