"""Display filter for movement feeds."""

from __future__ import annotations

GENERIC_OUTCOMES = ("Yes", "No")
_BINARY_WORDS = ("will", "reach", "hit", "election", "winner")


def is_binary_question(question: str) -> bool:
    """A yes/no style question that is not a head-to-head match."""
    lowered = question.lower()
    binary = "?" in question or any(word in lowered for word in _BINARY_WORDS)
    head_to_head = " vs " in question or " vs. " in question
    return binary and not head_to_head


def keep_movement(outcome: str, question: str) -> bool:
    """Drop Yes/No movements on matches that should carry named sides; keep everything else."""
    if outcome in GENERIC_OUTCOMES:
        return is_binary_question(question)
    return True
