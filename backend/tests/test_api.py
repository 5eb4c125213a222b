import unittest

import httpx

from backend.app.api.tournament import get_engine
from backend.app.core.database import get_db
from backend.app.main import app
from backend.app.services.commands import TournamentEngine
from backend.tests.support import EngineTestCase


class TestTournamentApi(EngineTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()

        async def test_db():
            async with self.Session() as session:
                yield session

        app.dependency_overrides[get_db] = test_db
        app.dependency_overrides[get_engine] = lambda: TournamentEngine(session_factory=self.Session)
        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    async def asyncTearDown(self):
        await self.client.aclose()
        app.dependency_overrides.clear()
        await super().asyncTearDown()

    async def create_started(self, tournament_format="single", players=4):
        response = await self.client.post("/tournaments", json={"name": "Cup", "format": tournament_format})
        self.assertEqual(response.status_code, 200)
        tid = response.json()["id"]
        for i in range(1, players + 1):
            response = await self.client.post(
                f"/tournaments/{tid}/players",
                json={"member_uuid": f"p{i}", "player_name": f"Player {i}", "skills": [{"name": "rating", "value": 100 - i}]}
            )
            self.assertEqual(response.status_code, 200)
        response = await self.client.post(f"/tournaments/{tid}/start")
        self.assertEqual(response.json()["status"], "started")
        return tid

    async def test_single_elimination_flow(self):
        tid = await self.create_started()

        response = await self.client.post(f"/tournaments/{tid}/bracket", json={"pairing_mode": "ranked"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["code"], "ok")
        first_match = body["value"][0]
        self.assertEqual([p["uuid"] for p in first_match["players"]], ["p1", "p2"])

        response = await self.client.post(f"/tournaments/{tid}/bracket", json={})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["code"], "round_already_generated")

        response = await self.client.post(
            f"/tournaments/matches/{first_match['id']}/result",
            json={"winner": "p1", "scores": [{"player_uuid": "p1", "score": 2}, {"player_uuid": "p2", "score": 1}]}
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.json()["value"]["propagated_to"])

        rounds = (await self.client.get(f"/tournaments/{tid}/rounds")).json()
        self.assertEqual([r["round"] for r in rounds], [1, 2])
        self.assertEqual(rounds[0]["matches"][0]["state"], "decided")
        self.assertEqual(rounds[1]["matches"][0]["players"][0]["uuid"], "p1")

        standings = (await self.client.get(f"/tournaments/{tid}/standings")).json()
        self.assertEqual(standings[0]["uuid"], "p1")

    async def test_reports_flow(self):
        tid = await self.create_started()
        body = (await self.client.post(f"/tournaments/{tid}/bracket", json={"pairing_mode": "ranked"})).json()
        match_id = body["value"][0]["id"]

        response = await self.client.post("/tournaments/reports", json={
            "match_id": match_id, "reporter_id": "p2", "winner": "p2",
            "scores": [{"player_uuid": "p1", "score": 0}, {"player_uuid": "p2", "score": 2}]
        })
        self.assertEqual(response.status_code, 200)
        report_id = response.json()["value"]["report_id"]

        summaries = (await self.client.get(f"/tournaments/{tid}/reports")).json()
        self.assertEqual(summaries[0]["match_id"], match_id)
        self.assertFalse(summaries[0]["reports_match"])

        response = await self.client.post(f"/tournaments/reports/{report_id}/accept")
        self.assertEqual(response.json()["value"]["status"], "accepted")
        response = await self.client.post(f"/tournaments/reports/{report_id}/accept")
        self.assertEqual(response.status_code, 409)

    async def test_errors_map_to_http_status(self):
        self.assertEqual((await self.client.get("/tournaments/999")).status_code, 404)
        self.assertEqual((await self.client.post("/tournaments/matches/999/result", json={})).status_code, 404)

        response = await self.client.post("/tournaments", json={"format": "robin", "max_rounds": 2})
        self.assertEqual(response.status_code, 422)

        tid = await self.create_started(players=1)
        response = await self.client.post(f"/tournaments/{tid}/bracket")
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["detail"]["code"], "insufficient_players")

    async def test_admin_delete(self):
        tid = await self.create_started()
        await self.client.post(f"/tournaments/{tid}/bracket")

        status = (await self.client.get("/admin/status")).json()
        self.assertEqual(status["tournaments"], 1)
        self.assertEqual(status["matches"], 2)

        response = await self.client.delete(f"/admin/tournaments/{tid}")
        self.assertEqual(response.status_code, 200)
        status = (await self.client.get("/admin/status")).json()
        self.assertEqual(status, {"tournaments": 0, "players": 0, "matches": 0, "score_reports": 0})


if __name__ == '__main__':
    unittest.main()
