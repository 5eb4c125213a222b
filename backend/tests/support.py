import tempfile
import unittest
from typing import Optional

from backend.app.core.database import Base, build_engine, build_session_maker
from backend.app.core.events import change_notifier
import backend.app.models  # noqa: F401
from backend.app.models.enums import PairingMode, RosterStatus, TournamentFormat
from backend.app.schemas.tournament_schema import TournamentCreate, TournamentSettings
from backend.app.services.bracket_service import bracket_service
from backend.app.services.match_store import match_store
from backend.app.services.roster_store import roster_store
from backend.app.services.tournament_service import tournament_service


class EngineTestCase(unittest.IsolatedAsyncioTestCase):
    """Each test gets its own SQLite file, schema and session."""

    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.engine = build_engine(f"sqlite+aiosqlite:///{self.tmpdir.name}/engine.db")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.Session = build_session_maker(self.engine)
        self.db = self.Session()
        change_notifier.clear()

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()
        change_notifier.clear()
        self.tmpdir.cleanup()

    async def make_tournament(
        self,
        tournament_format: TournamentFormat,
        player_count: int = 4,
        max_rounds: Optional[int] = None,
        settings: Optional[TournamentSettings] = None,
        start: bool = True,
    ):
        """Players p1..pN, registered in order; p1 has the best rating."""
        t = await tournament_service.create_tournament(self.db, TournamentCreate(
            name=f"{tournament_format} test",
            format=tournament_format,
            max_rounds=max_rounds,
            settings=settings or TournamentSettings(),
        ))
        for i in range(1, player_count + 1):
            await roster_store.add_player(
                self.db, t.id, f"p{i}", f"Player {i}",
                status=RosterStatus.ACTIVE,
                skills=[{"name": "rating", "value": 2000 - i}],
            )
        await self.db.commit()
        if start:
            t = await tournament_service.start_tournament(self.db, t.id)
        return t

    async def build(self, tournament_id: int, mode: PairingMode = PairingMode.RANKED):
        return await bracket_service.build_initial_bracket(self.db, tournament_id, pairing_mode=mode)

    async def fetch(self, tournament_id: int, round_number: int, match_number: int):
        """Reads the committed row through a fresh session."""
        async with self.Session() as session:
            return await match_store.find(session, tournament_id, round_number, match_number)

    @staticmethod
    def uuids(match):
        return [p.get("uuid") for p in match.players]
