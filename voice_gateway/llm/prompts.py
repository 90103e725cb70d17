"""System prompt construction for voice conversations."""

from voice_gateway.models import AgentConfig, AgentFunction

VOICE_RULES = (
    "- Keep responses EXTREMELY SHORT (1-2 sentences maximum)",
    "- Speak naturally and conversationally",
    "- NO lists, bullet points, or long explanations",
    "- Ask follow-up questions to keep dialogue flowing",
    "- Be concise - users are listening, not reading",
    "- Respond quickly and naturally like a human",
    "- Stay within the context of your system prompt",
    "- If asked about something outside your knowledge, politely decline",
    "- If the question is related to your prompt, provide helpful answers",
)


def _describe_function(func: AgentFunction) -> str:
    lines = [f"Function: {func.name} - {func.description}"]
    if func.parameters:
        params = ", ".join(
            f"{p.name}({p.type}{'*' if p.required else ''})" for p in func.parameters
        )
        lines.append(f"Params: {params}")
    return "\n".join(lines)


def build_system_prompt(agent: AgentConfig) -> str:
    """
    Build the system prompt for an agent.

    The output depends only on the agent config, so callers may cache it
    for the lifetime of a session. Required parameters are marked with `*`.
    """
    parts = [agent.system_prompt or AgentConfig.model_fields["system_prompt"].default]
    parts.append("\n\n=== VOICE CONVERSATION RULES ===\n")
    parts.append("\n".join(VOICE_RULES) + "\n")

    if agent.functions:
        parts.append("\n=== AVAILABLE FUNCTIONS ===\n")
        parts.append('Format: FUNCTION_CALL: function_name\\nPARAMETERS: {"param": "value"}\n\n')
        for func in agent.functions:
            parts.append(_describe_function(func) + "\n")

    return "".join(parts)
