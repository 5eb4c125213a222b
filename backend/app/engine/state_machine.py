"""
Matchup result state machine.

    Open --decide--> Decided --clear--> Open
    Decided --downstream decided--> Locked --downstream cleared--> Decided

Locked matchups accept no direct edit; the downstream result has to be cleared
first.
"""

from enum import StrEnum
from typing import Optional

from backend.app.exceptions import MatchLockedError, StateError
from backend.app.models.enums import MatchState


class MatchEvent(StrEnum):
    DECIDE = "decide"
    CLEAR = "clear"
    DOWNSTREAM_DECIDED = "downstream_decided"
    DOWNSTREAM_CLEARED = "downstream_cleared"


TRANSITIONS = {
    (MatchState.OPEN, MatchEvent.DECIDE): MatchState.DECIDED,
    (MatchState.OPEN, MatchEvent.CLEAR): MatchState.OPEN,
    (MatchState.DECIDED, MatchEvent.DECIDE): MatchState.DECIDED,
    (MatchState.DECIDED, MatchEvent.CLEAR): MatchState.OPEN,
    (MatchState.DECIDED, MatchEvent.DOWNSTREAM_DECIDED): MatchState.LOCKED,
    (MatchState.LOCKED, MatchEvent.DOWNSTREAM_DECIDED): MatchState.LOCKED,
    (MatchState.LOCKED, MatchEvent.DOWNSTREAM_CLEARED): MatchState.DECIDED,
    (MatchState.DECIDED, MatchEvent.DOWNSTREAM_CLEARED): MatchState.DECIDED,
    # An undecided match has nothing downstream to lock against
    (MatchState.OPEN, MatchEvent.DOWNSTREAM_DECIDED): MatchState.OPEN,
    (MatchState.OPEN, MatchEvent.DOWNSTREAM_CLEARED): MatchState.OPEN,
}


def transition(state: MatchState, event: MatchEvent) -> MatchState:
    """Single transition function for every matchup edit."""
    next_state = TRANSITIONS.get((state, event))
    if next_state is not None:
        return next_state
    if state == MatchState.LOCKED:
        raise MatchLockedError(
            "Matchup is locked: clear the downstream result first",
            state=state, event=event
        )
    raise StateError(f"Cannot apply {event} to a {state} matchup", state=state, event=event)


def is_decided(match) -> bool:
    return bool(match.winner) or bool(match.is_tie)


def match_state(match, downstream=None) -> MatchState:
    """Derive the state of a matchup from its own result and its downstream matchup."""
    if not is_decided(match):
        return MatchState.OPEN
    if downstream is not None and is_decided(downstream):
        return MatchState.LOCKED
    return MatchState.DECIDED


def event_for_result(winner: Optional[str], is_tie: bool) -> MatchEvent:
    if winner or is_tie:
        return MatchEvent.DECIDE
    return MatchEvent.CLEAR
