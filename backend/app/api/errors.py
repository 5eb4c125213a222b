from fastapi import HTTPException, status

from backend.app.exceptions import TournamentEngineError
from backend.app.models.enums import ResultCode
from backend.app.schemas.command_schema import CommandResult

HTTP_STATUS_BY_CODE = {
    ResultCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ResultCode.INSUFFICIENT_PLAYERS: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ResultCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ResultCode.STATE_ERROR: status.HTTP_409_CONFLICT,
    ResultCode.LOCKED: status.HTTP_409_CONFLICT,
    ResultCode.ALREADY_PENDING: status.HTTP_409_CONFLICT,
    ResultCode.ALREADY_ACCEPTED: status.HTTP_409_CONFLICT,
    ResultCode.PENDING_MATCHES: status.HTTP_409_CONFLICT,
    ResultCode.TOURNAMENT_FINISHED: status.HTTP_409_CONFLICT,
    ResultCode.NO_ELIGIBLE_PLAYERS: status.HTTP_409_CONFLICT,
    ResultCode.VERSION_CONFLICT: status.HTTP_409_CONFLICT,
    ResultCode.ROUND_ALREADY_GENERATED: status.HTTP_409_CONFLICT,
}


def http_error(code: ResultCode, message: str, details: dict = None) -> HTTPException:
    return HTTPException(
        status_code=HTTP_STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST),
        detail={"code": code, "message": message, "details": details or {}},
    )


def unwrap(result: CommandResult) -> CommandResult:
    """Raise for failed commands; successful ones (including partial success) pass through."""
    if not result.ok:
        raise http_error(result.code, result.message, result.details)
    return result


def from_engine_error(e: TournamentEngineError) -> HTTPException:
    return http_error(e.code, e.message, e.details)
