"""Detection of function-call directives in generated replies."""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import structlog

from voice_gateway.models import AgentFunction

logger = structlog.get_logger()

FUNCTION_CALL_PATTERN = re.compile(r"FUNCTION_CALL:\s*(\w+)\s*\nPARAMETERS:\s*", re.IGNORECASE)


@dataclass
class FunctionCall:
    """A function call requested by the model."""

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)
    preamble: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "parameters": self.parameters}


def detect_function_call(
    reply: str,
    functions: Sequence[AgentFunction],
) -> Optional[FunctionCall]:
    """
    Find a `FUNCTION_CALL: name` / `PARAMETERS: {...}` directive in a reply.

    Returns None when there is no directive, the parameters are not a JSON
    object, or the function is not one the agent declares. Any text before
    the directive is kept as `preamble` so it can still be spoken.
    """
    match = FUNCTION_CALL_PATTERN.search(reply)
    if not match:
        return None

    name = match.group(1).strip()
    try:
        parameters, _ = json.JSONDecoder().raw_decode(reply, match.end())
    except ValueError as e:
        logger.warning("Failed to parse function parameters", function=name, error=str(e))
        return None
    if not isinstance(parameters, dict):
        logger.warning("Function parameters are not an object", function=name)
        return None

    if not any(func.name.strip() == name for func in functions):
        logger.warning("Function not found", function=name)
        return None

    return FunctionCall(name=name, parameters=parameters, preamble=reply[: match.start()].strip())
