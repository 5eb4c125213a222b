import unittest
from unittest.mock import patch

from backend.app.core.events import change_notifier
from backend.app.exceptions import MatchLockedError, VersionConflictError
from backend.app.models.enums import ResultCode, TournamentFormat
from backend.app.schemas.bracket_schema import ScoreEntry
from backend.app.services.commands import TournamentEngine
from backend.app.services.match_store import match_store
from backend.app.services.propagation_service import propagation_service
from backend.app.services.result_service import result_service
from backend.tests.support import EngineTestCase


class TestCommandResults(EngineTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.engine_commands = TournamentEngine(session_factory=self.Session, conflict_retries=1)

    async def test_build_returns_matchups(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=5)).id
        result = await self.engine_commands.build_initial_bracket(tid)

        self.assertTrue(result.ok)
        self.assertEqual(result.code, ResultCode.OK)
        self.assertEqual(len(result.value), 6)

        again = await self.engine_commands.build_initial_bracket(tid)
        self.assertFalse(again.ok)
        self.assertEqual(again.code, ResultCode.ROUND_ALREADY_GENERATED)

    async def test_insufficient_players(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=1)).id
        result = await self.engine_commands.build_initial_bracket(tid)
        self.assertEqual(result.code, ResultCode.INSUFFICIENT_PLAYERS)

    async def test_unknown_match(self):
        result = await self.engine_commands.declare_result(999, winner="p1")
        self.assertFalse(result.ok)
        self.assertEqual(result.code, ResultCode.NOT_FOUND)

    async def test_stale_expected_version(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=4)).id
        await self.build(tid)
        match = await match_store.find(self.db, tid, 1, 1)
        match_id, version = match.id, match.version

        first = await self.engine_commands.declare_result(match_id, winner="p1", expected_version=version)
        self.assertTrue(first.ok)
        self.assertEqual(first.value.version, version + 1)

        stale = await self.engine_commands.declare_result(match_id, winner="p2", expected_version=version)
        self.assertEqual(stale.code, ResultCode.VERSION_CONFLICT)
        self.assertEqual((await self.fetch(tid, 1, 1)).winner, "p1")

    async def test_locked_match(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=4)).id
        await self.build(tid)
        r1m1 = await match_store.find(self.db, tid, 1, 1)
        r1m2 = await match_store.find(self.db, tid, 1, 2)
        r1m1_id, r1m2_id = r1m1.id, r1m2.id

        await self.engine_commands.declare_result(r1m1_id, winner="p1")
        await self.engine_commands.declare_result(r1m2_id, winner="p4")
        final = await self.fetch(tid, 2, 1)
        await self.engine_commands.declare_result(final.id, winner="p4")

        result = await self.engine_commands.declare_result(r1m1_id, winner="p2")
        self.assertEqual(result.code, ResultCode.LOCKED)

        reopened = await self.engine_commands.reopen_match(r1m1_id)
        self.assertEqual(reopened.code, ResultCode.OK)
        self.assertIsNone((await self.fetch(tid, 2, 1)).winner)

    async def test_propagation_failure_is_partial_success(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=4)).id
        await self.build(tid)
        match_id = (await match_store.find(self.db, tid, 1, 1)).id

        with patch.object(propagation_service, "propagate", side_effect=MatchLockedError("destination busy")):
            with self.assertLogs("backend.app.services.result_service", level="WARNING"):
                result = await self.engine_commands.declare_result(match_id, winner="p1")

        self.assertTrue(result.ok)
        self.assertEqual(result.code, ResultCode.PARTIAL_SUCCESS)
        self.assertEqual(result.message, "destination busy")
        # The primary write stands
        self.assertEqual((await self.fetch(tid, 1, 1)).winner, "p1")
        self.assertIsNone(await self.fetch(tid, 2, 1))

    async def test_conflict_is_retried_with_fresh_session(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=4)).id
        await self.build(tid)
        match_id = (await match_store.find(self.db, tid, 1, 1)).id

        real_declare = result_service.declare_result
        sessions = []

        async def flaky_declare(db, *args, **kwargs):
            sessions.append(db)
            if len(sessions) == 1:
                raise VersionConflictError("changed underneath")
            return await real_declare(db, *args, **kwargs)

        with patch.object(result_service, "declare_result", side_effect=flaky_declare):
            result = await self.engine_commands.declare_result(match_id, winner="p1")

        self.assertTrue(result.ok)
        self.assertEqual(len(sessions), 2)
        self.assertIsNot(sessions[0], sessions[1])

    async def test_conflict_retries_run_out(self):
        calls = []

        async def always_conflicts(db, *args, **kwargs):
            calls.append(1)
            raise VersionConflictError("changed underneath", match_id=1)

        with patch.object(result_service, "declare_result", side_effect=always_conflicts):
            result = await self.engine_commands.declare_result(1, winner="p1")

        self.assertEqual(len(calls), 2)
        self.assertEqual(result.code, ResultCode.VERSION_CONFLICT)
        self.assertEqual(result.details, {"match_id": 1})

    async def test_force_settled_round(self):
        tid = (await self.make_tournament(TournamentFormat.SWISS, player_count=4)).id
        await self.build(tid)

        blocked = await self.engine_commands.start_next_round(tid)
        self.assertEqual(blocked.code, ResultCode.PENDING_MATCHES)

        result = await self.engine_commands.start_next_round(tid, force_settle=True)
        self.assertTrue(result.ok)
        self.assertEqual(result.code, ResultCode.PENDING_MATCHES_FORCE_SETTLED)
        self.assertEqual(len(result.details["force_settled"]), 2)
        self.assertEqual(len(result.value), 2)

        duplicate = await self.engine_commands.start_next_round(tid, force_settle=True, expected_round=1)
        self.assertEqual(duplicate.code, ResultCode.ROUND_ALREADY_GENERATED)

    async def test_report_commands(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=4)).id
        await self.build(tid)
        match_id = (await match_store.find(self.db, tid, 1, 1)).id
        scores = [ScoreEntry(player_uuid="p1", score=2), ScoreEntry(player_uuid="p2", score=0)]

        submitted = await self.engine_commands.submit_score_report(match_id, "p1", scores, winner="p1")
        self.assertTrue(submitted.ok)
        duplicate = await self.engine_commands.submit_score_report(match_id, "p1", scores, winner="p1")
        self.assertEqual(duplicate.code, ResultCode.ALREADY_PENDING)

        report_id = submitted.value.report_id
        accepted = await self.engine_commands.accept_score_report(report_id)
        self.assertEqual(accepted.code, ResultCode.OK)
        again = await self.engine_commands.accept_score_report(report_id)
        self.assertEqual(again.code, ResultCode.ALREADY_ACCEPTED)

    async def test_listeners_run_after_commit(self):
        tid = (await self.make_tournament(TournamentFormat.SINGLE, player_count=4)).id
        await self.build(tid)
        match_id = (await match_store.find(self.db, tid, 1, 1)).id
        seen = []

        async def broken(tournament_id, changed_id):
            raise RuntimeError("listener down")

        async def recorder(tournament_id, changed_id):
            # The committed row is visible from a fresh session
            seen.append((changed_id, (await self.fetch(tournament_id, 1, 1)).winner))

        change_notifier.subscribe_match(broken)
        change_notifier.subscribe_match(recorder)

        result = await self.engine_commands.declare_result(match_id, winner="p2")
        self.assertTrue(result.ok)
        self.assertEqual(seen[0], (match_id, "p2"))
        self.assertEqual(len(seen), 2)


if __name__ == '__main__':
    unittest.main()
