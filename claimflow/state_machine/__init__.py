# State machine module - adjacency tables and transition checks
from .machine import (
    ClaimStateMachine,
    TransitionCheck,
    check_transition,
    has_reason,
    is_valid_transition,
    requires_reason,
    transitions_for,
)

__all__ = [
    "ClaimStateMachine",
    "TransitionCheck",
    "check_transition",
    "has_reason",
    "is_valid_transition",
    "requires_reason",
    "transitions_for",
]
