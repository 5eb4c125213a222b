import logging
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

MatchListener = Callable[[int, int], Awaitable[None]]
RoundListener = Callable[[int, int], Awaitable[None]]

class ChangeNotifier:
    """Tells observers that a matchup or a round changed.

    Called only after the state write committed. Listener failures are logged
    and never propagate back into the engine.
    """

    def __init__(self):
        self._match_listeners: List[MatchListener] = []
        self._round_listeners: List[RoundListener] = []

    def subscribe_match(self, callback: MatchListener):
        self._match_listeners.append(callback)

    def subscribe_round(self, callback: RoundListener):
        self._round_listeners.append(callback)

    def clear(self):
        self._match_listeners.clear()
        self._round_listeners.clear()

    async def notify_match_changed(self, tournament_id: int, match_id: Optional[int]):
        for listener in self._match_listeners:
            try:
                await listener(tournament_id, match_id)
            except Exception:
                logger.exception("Match listener failed for match %s", match_id)

    async def notify_round_changed(self, tournament_id: int, round_number: int):
        for listener in self._round_listeners:
            try:
                await listener(tournament_id, round_number)
            except Exception:
                logger.exception(
                    "Round listener failed for tournament %s round %s",
                    tournament_id, round_number
                )

change_notifier = ChangeNotifier()
