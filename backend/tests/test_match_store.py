import unittest

from backend.app.engine.slots import placeholder_player
from backend.app.exceptions import NotFoundError, RoundAlreadyGeneratedError, VersionConflictError
from backend.app.models.enums import TournamentFormat
from backend.app.schemas.bracket_schema import BracketPlayer, PlannedMatchup
from backend.app.services.match_store import match_store
from backend.tests.support import EngineTestCase


class TestMatchStore(EngineTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.tid = (await self.make_tournament(TournamentFormat.SWISS, player_count=4)).id
        await self.build(self.tid)
        self.match_id = (await match_store.find(self.db, self.tid, 1, 1)).id

    async def test_stale_write_is_a_version_conflict(self):
        async with self.Session() as first, self.Session() as second:
            mine = await match_store.get(first, self.match_id)
            theirs = await match_store.get(second, self.match_id)

            match_store.set_result(theirs, "p2", False)
            await match_store.commit(second)

            match_store.set_result(mine, "p1", False)
            with self.assertRaises(VersionConflictError):
                await match_store.commit(first)

        stored = await self.fetch(self.tid, 1, 1)
        self.assertEqual(stored.winner, "p2")
        self.assertEqual(stored.version, 2)

    async def test_duplicate_slot_is_refused(self):
        planned = [PlannedMatchup(
            round=1,
            match_number=1,
            players=[BracketPlayer(uuid="p1", name="Player 1"), placeholder_player("BYE")],
        )]
        with self.assertRaises(RoundAlreadyGeneratedError):
            await match_store.insert_many(self.db, self.tid, planned)
        self.assertEqual(await match_store.count_round(self.db, self.tid, 1), 2)

    async def test_missing_match(self):
        with self.assertRaises(NotFoundError):
            await match_store.get(self.db, 12345)

    async def test_round_queries(self):
        self.assertEqual(await match_store.max_round(self.db, self.tid), 1)
        self.assertEqual([m.match_number for m in await match_store.list_round(self.db, self.tid, 1)], [1, 2])
        self.assertEqual(await match_store.list_round(self.db, self.tid, 2), [])


if __name__ == '__main__':
    unittest.main()
