"""End-to-end tests for the HTTP routes."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from jobtracker.services import text_generation


async def _create(client, company: str, status: str = "APPLIED") -> dict:
    resp = await client.post(
        "/api/applications", json={"company": company, "role": "Engineer", "status": status}
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def _column(board: dict, status: str) -> list[tuple[int, int]]:
    return [(card["id"], card["order"]) for card in board["columns"][status]]


class TestMeta:
    async def test_root_and_health(self, client):
        assert (await client.get("/health")).json() == {"status": "ok"}
        assert (await client.get("/")).json()["docs"] == "/docs"

    def test_routes_use_the_registered_limiter(self):
        from jobtracker.api.routes import ai
        from jobtracker.main import app

        assert app.state.limiter is ai.limiter

    async def test_security_headers(self, client):
        resp = await client.get("/health")
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["x-frame-options"] == "DENY"


class TestApplications:
    async def test_crud_roundtrip(self, client):
        created = await _create(client, "Acme")
        assert (created["status"], created["order"]) == ("APPLIED", 0)

        resp = await client.patch(f"/api/applications/{created['id']}", json={"location": "Berlin"})
        assert resp.json()["location"] == "Berlin"

        listed = (await client.get("/api/applications")).json()
        assert [a["company"] for a in listed] == ["Acme"]

        assert (await client.delete(f"/api/applications/{created['id']}")).json() == {"status": "deleted"}
        assert (await client.get(f"/api/applications/{created['id']}")).status_code == 404

    async def test_unknown_status_is_rejected_by_schema(self, client):
        resp = await client.post(
            "/api/applications", json={"company": "Acme", "role": "PM", "status": "GHOSTED"}
        )
        assert resp.status_code == 422

    async def test_blank_company_is_rejected(self, client):
        resp = await client.post("/api/applications", json={"company": " ", "role": "PM"})
        assert resp.status_code == 422

    async def test_patch_status_moves_to_end(self, client):
        first = await _create(client, "A", "INTERVIEW")
        moving = await _create(client, "B")

        resp = await client.patch(f"/api/applications/{moving['id']}", json={"status": "INTERVIEW"})

        assert (resp.json()["status"], resp.json()["order"]) == ("INTERVIEW", 1)
        board = (await client.get("/api/board")).json()
        assert _column(board, "INTERVIEW") == [(first["id"], 0), (moving["id"], 1)]
        assert board["columns"]["APPLIED"] == []

    async def test_reorder(self, client):
        a, b, c = [await _create(client, name) for name in "ABC"]
        resp = await client.post(
            "/api/applications/reorder",
            json={"status": "APPLIED", "ordered_ids": [c["id"], a["id"], b["id"]]},
        )
        assert resp.json() == {"ok": True}

        board = (await client.get("/api/board")).json()
        assert _column(board, "APPLIED") == [(c["id"], 0), (a["id"], 1), (b["id"], 2)]

    @pytest.mark.parametrize(
        "ordered_ids, status_code",
        [([], 422), ([1, 1], 400), ([1, 999], 400)],
    )
    async def test_reorder_rejections(self, client, ordered_ids, status_code):
        await _create(client, "A")
        resp = await client.post(
            "/api/applications/reorder", json={"status": "APPLIED", "ordered_ids": ordered_ids}
        )
        assert resp.status_code == status_code


class TestBoard:
    async def test_move_within_column(self, client):
        a, b, c = [await _create(client, name) for name in "ABC"]
        resp = await client.post(
            "/api/board/move", json={"application_id": a["id"], "dest_status": "APPLIED", "dest_index": 2}
        )

        body = resp.json()
        assert body["moved"] is True
        assert _column(body["board"], "APPLIED") == [(b["id"], 0), (c["id"], 1), (a["id"], 2)]

    async def test_move_with_index_only(self, client):
        a, b, c = [await _create(client, name) for name in "ABC"]
        resp = await client.post("/api/board/move", json={"application_id": a["id"], "dest_index": 2})

        body = resp.json()
        assert body["moved"] is True
        assert _column(body["board"], "APPLIED") == [(b["id"], 0), (c["id"], 1), (a["id"], 2)]

    async def test_move_across_columns(self, client):
        a, b = [await _create(client, name) for name in "AB"]
        resp = await client.post(
            "/api/board/move", json={"application_id": a["id"], "dest_status": "OFFER", "dest_index": 0}
        )

        board = resp.json()["board"]
        assert _column(board, "APPLIED") == [(b["id"], 0)]
        assert _column(board, "OFFER") == [(a["id"], 0)]
        assert board["columns"]["OFFER"][0]["status"] == "OFFER"

    async def test_move_onto_card(self, client):
        a = await _create(client, "A")
        x = await _create(client, "X", "INTERVIEW")
        resp = await client.post(
            "/api/board/move", json={"application_id": a["id"], "over_application_id": x["id"]}
        )
        assert _column(resp.json()["board"], "INTERVIEW") == [(a["id"], 0), (x["id"], 1)]

    async def test_noop_move(self, client):
        a = await _create(client, "A")
        resp = await client.post(
            "/api/board/move", json={"application_id": a["id"], "dest_status": "APPLIED", "dest_index": 0}
        )
        assert resp.json()["moved"] is False

    async def test_move_unknown_card(self, client):
        resp = await client.post("/api/board/move", json={"application_id": 404, "dest_status": "OFFER"})
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Application not found"}

    async def test_negative_index_rejected(self, client):
        a = await _create(client, "A")
        resp = await client.post(
            "/api/board/move", json={"application_id": a["id"], "dest_status": "OFFER", "dest_index": -1}
        )
        assert resp.status_code == 422


class TestInsights:
    async def test_empty_pipeline(self, client):
        body = (await client.get("/api/insights")).json()

        assert body["total_applications"] == 0
        assert body["funnel"] == {
            "applied_to_interview": 0.0,
            "interview_to_offer": 0.0,
            "offer_to_accepted": 0.0,
        }
        assert len(body["daily_created"]) == 30
        assert body["tips"][0]["title"] == "Enable time-per-stage tracking"

    async def test_counts_created_and_moved(self, client):
        a = await _create(client, "A")
        await _create(client, "B")
        await client.post("/api/board/move", json={"application_id": a["id"], "dest_status": "INTERVIEW"})

        body = (await client.get("/api/insights")).json()
        assert body["by_status"] == {"APPLIED": 1, "INTERVIEW": 1, "OFFER": 0, "REJECTED": 0}
        assert body["reached_count"]["APPLIED"] == 2
        assert body["reached_count"]["INTERVIEW"] == 1
        assert body["funnel"]["applied_to_interview"] == 1.0
        assert body["daily_created"][-1]["count"] == 2


class TestCoach:
    async def test_snapshot_history_and_report(self, client):
        await _create(client, "A")
        saved = (await client.post("/api/ai/coach/snapshot", json={"range_days": 7})).json()
        assert saved["ok"] is True

        history = (await client.get("/api/ai/coach/history", params={"take": 500})).json()
        assert [row["id"] for row in history] == [saved["saved_id"]]

        report = (await client.get(f"/api/ai/coach/report/{saved['saved_id']}")).json()
        assert report["total_applications"] == 1
        assert report["reached_count"] == 1

    async def test_client_report_and_compare(self, client):
        base = {
            "by_status": {"APPLIED": 0},
            "daily_created": [],
            "funnel": {"applied_to_interview": 0, "interview_to_offer": 0, "offer_to_accepted": 0},
            "avg_days_in_pipeline": 3.14,
            "avg_time_per_stage": {"APPLIED": 1.0},
            "reached_count": {"APPLIED": 2, "INTERVIEW": 1},
        }
        await client.post("/api/ai/coach", json={**base, "range_days": 30, "total_applications": 40})
        await client.post("/api/ai/coach", json={**base, "range_days": 7, "total_applications": 12})
        skipped = await client.post(
            "/api/ai/coach", json={**base, "range_days": 7, "total_applications": 1, "save": False}
        )
        assert skipped.json() == {"ok": True, "saved_id": None}

        body = (await client.get("/api/ai/coach/compare")).json()
        assert body["latest7"]["avg_days_in_pipeline"] == 3.1
        assert body["latest7"]["reached_count"] == 3
        assert body["delta"]["total_applications"] == -28
        assert body["delta"]["pct"]["total_applications"] == pytest.approx(-70.0)
        assert body["action_cards"][0]["priority"] == "low"

    async def test_bad_range(self, client):
        resp = await client.post("/api/ai/coach/snapshot", json={"range_days": 14})
        assert resp.status_code == 422

    async def test_missing_report(self, client):
        assert (await client.get("/api/ai/coach/report/9")).status_code == 404


class TestTextGeneration:
    def _client(self, text: str):
        openai_client = MagicMock()
        openai_client.responses.create = AsyncMock(
            return_value=SimpleNamespace(output_text=text, output=[])
        )
        return openai_client

    async def test_summary_saved(self, client):
        app = await _create(client, "Acme")
        with patch.object(text_generation, "get_openai_client", return_value=self._client("Nice fit.")):
            resp = await client.post("/api/ai/summary", json={"application_id": app["id"], "save": True})

        assert resp.json() == {"application_id": app["id"], "summary": "Nice fit.", "saved": True}
        stored = (await client.get(f"/api/applications/{app['id']}")).json()
        assert stored["ai_summary"] == "Nice fit."

    async def test_followup(self, client):
        app = await _create(client, "Acme")
        with patch.object(
            text_generation, "get_openai_client", return_value=self._client("Subject: Hello\nBody text")
        ):
            resp = await client.post("/api/ai/followup", json={"application_id": app["id"]})
        assert (resp.json()["subject"], resp.json()["body"]) == ("Hello", "Body text")

    async def test_generation_failure_leaves_store_untouched(self, client):
        app = await _create(client, "Acme")
        with patch.object(text_generation, "get_openai_client", return_value=self._client("")):
            resp = await client.post("/api/ai/summary", json={"application_id": app["id"], "save": True})

        assert resp.status_code == 502
        assert resp.json() == {"detail": "No output generated"}
        stored = (await client.get(f"/api/applications/{app['id']}")).json()
        assert stored["ai_summary"] is None

    async def test_unknown_application(self, client):
        resp = await client.post("/api/ai/review", json={"application_id": 123})
        assert resp.status_code == 404
