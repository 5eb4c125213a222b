import unittest

from backend.app.exceptions import (
    NoEligiblePlayersError, PendingMatchesError, RoundAlreadyGeneratedError,
    StateError, TournamentFinishedError
)
from backend.app.models.enums import RosterStatus, TournamentFormat, WinCondition
from backend.app.schemas.tournament_schema import TournamentSettings
from backend.app.services.bracket_service import bracket_service
from backend.app.services.match_store import match_store
from backend.app.services.result_service import result_service
from backend.app.services.roster_store import roster_store
from backend.app.services.swiss_service import swiss_service
from backend.tests.support import EngineTestCase


class TestSwissRounds(EngineTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.tid = (await self.make_tournament(TournamentFormat.SWISS, player_count=4)).id
        await self.build(self.tid)

    async def decide_round(self, round_number, winners):
        for match in await match_store.list_round(self.db, self.tid, round_number):
            winner = winners.get(match.match_number)
            await result_service.declare_result(self.db, match.id, winner=winner, is_tie=winner is None)

    async def test_winners_meet_next_round(self):
        """
        Scenario: p1 beats p2 and p3 beats p4 in round 1.
        Round 2 pairs the winners and the losers, with no rematch.
        """
        await self.decide_round(1, {1: "p1", 2: "p3"})
        created, outcome = await swiss_service.start_next_round(self.db, self.tid)

        self.assertEqual(outcome.round, 2)
        self.assertEqual(outcome.force_settled, [])
        self.assertEqual([set(self.uuids(m)) for m in created], [{"p1", "p3"}, {"p2", "p4"}])

    async def test_unresolved_round_blocks_pairing(self):
        with self.assertRaises(PendingMatchesError):
            await swiss_service.start_next_round(self.db, self.tid)
        self.assertEqual(await match_store.max_round(self.db, self.tid), 1)

    async def test_force_settle_records_ties(self):
        r1m1 = await match_store.find(self.db, self.tid, 1, 1)
        await result_service.declare_result(self.db, r1m1.id, winner="p1")

        created, outcome = await swiss_service.start_next_round(self.db, self.tid, force_settle=True)

        self.assertEqual(len(outcome.force_settled), 1)
        settled = await self.fetch(self.tid, 1, 2)
        self.assertTrue(settled.is_tie)
        self.assertEqual(outcome.force_settled, [settled.id])
        self.assertEqual(len(created), 2)

    async def test_stale_expected_round_is_refused(self):
        await self.decide_round(1, {1: "p1", 2: "p3"})
        await swiss_service.start_next_round(self.db, self.tid, expected_round=1)

        with self.assertRaises(RoundAlreadyGeneratedError) as ctx:
            await swiss_service.start_next_round(self.db, self.tid, expected_round=1)
        self.assertIsInstance(ctx.exception, NoEligiblePlayersError)
        self.assertEqual(await match_store.count_round(self.db, self.tid, 2), 2)
        self.assertEqual(await match_store.max_round(self.db, self.tid), 2)

    async def test_withdrawn_player_is_not_paired(self):
        await self.decide_round(1, {1: "p1", 2: "p3"})
        await roster_store.set_status(self.db, self.tid, "p4", RosterStatus.INACTIVE)
        await self.db.commit()

        created, _ = await swiss_service.start_next_round(self.db, self.tid)
        seated = {uuid for m in created for uuid in self.uuids(m) if uuid}
        self.assertEqual(seated, {"p1", "p2", "p3"})
        self.assertTrue(any(m.winner and "" in self.uuids(m) for m in created))


class TestSwissWinConditions(EngineTestCase):
    async def test_fixed_round_count(self):
        tid = (await self.make_tournament(TournamentFormat.SWISS, player_count=2, max_rounds=1)).id
        created = await self.build(tid)
        await result_service.declare_result(self.db, created[0].id, winner="p1")

        with self.assertRaises(TournamentFinishedError):
            await swiss_service.start_next_round(self.db, tid)

    async def test_points_to_win(self):
        settings = TournamentSettings(win_condition=WinCondition.POINTS, points_to_win=1)
        tid = (await self.make_tournament(TournamentFormat.SWISS, player_count=2, settings=settings)).id
        created = await self.build(tid)
        await result_service.declare_result(self.db, created[0].id, winner="p2")

        with self.assertRaises(TournamentFinishedError) as ctx:
            await swiss_service.start_next_round(self.db, tid)
        self.assertEqual(ctx.exception.details["leader"], "p2")

    async def test_requires_a_first_round(self):
        tid = (await self.make_tournament(TournamentFormat.SWISS, player_count=4)).id
        with self.assertRaises(NoEligiblePlayersError):
            await swiss_service.start_next_round(self.db, tid)

    async def test_only_swiss_pairs_on_demand(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=4)).id
        await self.build(tid)
        with self.assertRaises(StateError):
            await swiss_service.start_next_round(self.db, tid)


class TestRoundRobinService(EngineTestCase):
    async def test_whole_schedule_is_stored(self):
        tid = (await self.make_tournament(TournamentFormat.ROBIN, player_count=5)).id
        created = await self.build(tid)

        self.assertEqual(len(created), 15)
        self.assertEqual(await match_store.max_round(self.db, tid), 5)

        views = await bracket_service.rounds_view(self.db, tid)
        self.assertEqual([v.round for v in views], [1, 2, 3, 4, 5])
        self.assertTrue(all(len(v.matches) == 3 for v in views))

    async def test_rest_round_is_not_a_win(self):
        tid = (await self.make_tournament(TournamentFormat.ROBIN, player_count=3)).id
        await self.build(tid)

        standings = await bracket_service.standings(self.db, tid)
        self.assertEqual(len(standings), 3)
        self.assertTrue(all(s.wins == 0 and s.byes == 1 for s in standings))

    async def test_double_round_robin(self):
        settings = TournamentSettings(double_round_robin=True)
        tid = (await self.make_tournament(TournamentFormat.ROBIN, player_count=4, settings=settings)).id
        created = await self.build(tid)
        self.assertEqual(len(created), 12)


if __name__ == '__main__':
    unittest.main()
