"""
Quote status workflow
Which statuses a quote can move to, and when its content may still change
"""

from __future__ import annotations

from typing import Dict, FrozenSet

QUOTE_STATUSES = ("draft", "pending_review", "sent", "viewed", "accepted", "rejected", "expired")

# Content (lines, discount, client details) is frozen once a quote is sent
EDITABLE_STATUSES: FrozenSet[str] = frozenset({"draft", "pending_review"})

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "draft": frozenset({"pending_review", "sent"}),
    "pending_review": frozenset({"draft", "sent"}),
    "sent": frozenset({"viewed", "accepted", "rejected", "expired"}),
    "viewed": frozenset({"accepted", "rejected", "expired"}),
    "accepted": frozenset(),
    "rejected": frozenset(),
    "expired": frozenset(),
}


class StatusTransitionError(ValueError):
    """Raised when a quote cannot move from its current status to the requested one"""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Quote cannot move from '{current}' to '{target}'")


def is_editable(status: str) -> bool:
    return status in EDITABLE_STATUSES


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def check_transition(current: str, target: str) -> str:
    """
    Validate a status change.

    Returns:
        The target status

    Raises:
        StatusTransitionError: if the move is not allowed (unknown statuses included)
    """
    if not can_transition(current, target):
        raise StatusTransitionError(current, target)
    return target
