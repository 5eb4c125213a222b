from enum import StrEnum

class TournamentFormat(StrEnum):
    SINGLE = "single"
    SWISS = "swiss"
    ROBIN = "robin"

class TournamentStatus(StrEnum):
    INITIALIZATION = "initialization"
    STARTED = "started"
    COMPLETED = "completed"

class RosterStatus(StrEnum):
    ACTIVE = "active"
    WAITLIST = "waitlist"
    INACTIVE = "inactive"

class AccountType(StrEnum):
    LOGGED_IN = "logged_in"
    ANONYMOUS = "anonymous"
    PLACEHOLDER = "placeholder"
    GENERATED = "generated"

class PairingMode(StrEnum):
    RANDOM = "random"
    SEEDED = "seeded"
    RANKED = "ranked"

class WinCondition(StrEnum):
    ROUNDS = "rounds"
    POINTS = "points"

class ReportStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DISPUTED = "disputed"
    AUTO_ACCEPTED = "auto-accepted"

class MatchState(StrEnum):
    OPEN = "open"
    DECIDED = "decided"
    LOCKED = "locked"

class ResultCode(StrEnum):
    OK = "ok"
    PARTIAL_SUCCESS = "partial_success"
    VALIDATION_ERROR = "validation_error"
    INSUFFICIENT_PLAYERS = "insufficient_players"
    NOT_FOUND = "not_found"
    STATE_ERROR = "state_error"
    LOCKED = "locked"
    ALREADY_PENDING = "already_pending"
    ALREADY_ACCEPTED = "already_accepted"
    PENDING_MATCHES = "pending_matches"
    PENDING_MATCHES_FORCE_SETTLED = "pending_matches_force_settled"
    TOURNAMENT_FINISHED = "tournament_finished"
    NO_ELIGIBLE_PLAYERS = "no_eligible_players"
    VERSION_CONFLICT = "version_conflict"
    ROUND_ALREADY_GENERATED = "round_already_generated"
