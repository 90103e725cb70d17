"""Utterance gate: decides when the caller has said enough to answer."""

from voice_gateway.models import Utterance

DEFAULT_EARLY_TRIGGER_WORDS = 8


def should_process(
    text: str,
    is_final: bool,
    early_trigger_words: int = DEFAULT_EARLY_TRIGGER_WORDS,
) -> bool:
    """
    Return True when a transcript should start a turn.

    Final transcripts always trigger. Interim transcripts trigger early once
    they reach `early_trigger_words` words. Blank text never triggers.
    """
    if not text or not text.strip():
        return False
    return is_final or len(text.split()) >= early_trigger_words


class UtteranceGate:
    """Stateless gate bound to a configured early-trigger threshold."""

    def __init__(self, early_trigger_words: int = DEFAULT_EARLY_TRIGGER_WORDS) -> None:
        self.early_trigger_words = early_trigger_words

    def should_process(self, utterance: Utterance) -> bool:
        return should_process(utterance.text, utterance.is_final, self.early_trigger_words)
