"""Exceptions raised by the tournament progression engine.

Every engine error carries a ``code`` so the command layer can turn it into a
typed result for the calling UI instead of letting it escape as an exception.
"""

from backend.app.models.enums import ResultCode


# ========== Base Engine Exception ==========


class TournamentEngineError(Exception):
    """Base exception for all engine errors."""

    code = ResultCode.STATE_ERROR

    def __init__(self, message: str = "", **details):
        super().__init__(message)
        self.message = message
        self.details = details


# ========== Validation ==========


class ValidationError(TournamentEngineError):
    """Malformed input, e.g. declaring a winner who is not in the matchup."""

    code = ResultCode.VALIDATION_ERROR


class InsufficientPlayersError(ValidationError):
    """Raised when fewer than two active players are available."""

    code = ResultCode.INSUFFICIENT_PLAYERS


# ========== Not Found ==========


class NotFoundError(TournamentEngineError):
    """Referenced matchup, report or tournament does not exist."""

    code = ResultCode.NOT_FOUND


# ========== State ==========


class StateError(TournamentEngineError):
    """Operation is invalid for the current state."""

    code = ResultCode.STATE_ERROR


class MatchLockedError(StateError):
    """Raised when editing a matchup whose downstream result is already decided."""

    code = ResultCode.LOCKED


class AlreadyPendingError(StateError):
    """Raised when a reporter already has a pending report for the match."""

    code = ResultCode.ALREADY_PENDING


class AlreadyAcceptedError(StateError):
    """Raised when a report (or the match it belongs to) is already accepted."""

    code = ResultCode.ALREADY_ACCEPTED


class PendingMatchesError(StateError):
    """Raised when the current round still has unresolved matches."""

    code = ResultCode.PENDING_MATCHES


class TournamentFinishedError(StateError):
    """Raised when the configured win condition has already been met."""

    code = ResultCode.TOURNAMENT_FINISHED


class NoEligiblePlayersError(StateError):
    """Raised when a new round cannot be paired."""

    code = ResultCode.NO_ELIGIBLE_PLAYERS


# ========== Conflict ==========


class ConflictError(TournamentEngineError):
    """Optimistic concurrency failure. Safe to retry after re-reading state."""

    code = ResultCode.VERSION_CONFLICT


class VersionConflictError(ConflictError):
    """Raised when a matchup changed underneath the caller."""

    code = ResultCode.VERSION_CONFLICT


class RoundAlreadyGeneratedError(ConflictError, NoEligiblePlayersError):
    """Raised when a round has already been generated for the tournament."""

    code = ResultCode.ROUND_ALREADY_GENERATED
