import unittest

from backend.app.core.events import ChangeNotifier


class TestChangeNotifier(unittest.IsolatedAsyncioTestCase):
    async def test_failing_listener_does_not_block_others(self):
        notifier = ChangeNotifier()
        seen = []

        async def broken(tournament_id, match_id):
            raise RuntimeError("listener down")

        async def recorder(tournament_id, match_id):
            seen.append((tournament_id, match_id))

        notifier.subscribe_match(broken)
        notifier.subscribe_match(recorder)

        with self.assertLogs("backend.app.core.events", level="ERROR"):
            await notifier.notify_match_changed(1, 42)
        self.assertEqual(seen, [(1, 42)])

    async def test_round_listeners(self):
        notifier = ChangeNotifier()
        rounds = []

        async def recorder(tournament_id, round_number):
            rounds.append(round_number)

        notifier.subscribe_round(recorder)
        await notifier.notify_round_changed(1, 3)
        notifier.clear()
        await notifier.notify_round_changed(1, 4)
        self.assertEqual(rounds, [3])


if __name__ == '__main__':
    unittest.main()
