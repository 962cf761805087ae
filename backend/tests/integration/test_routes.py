"""
API tests through the ASGI app with database, speech service and metrics
recorder overridden (see the `client` fixture).
"""
from decimal import Decimal

import pytest

from src.voice.exceptions import AcquisitionError

pytestmark = pytest.mark.integration


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "quickslip-voice-api"}

    async def test_health_db(self, client):
        response = await client.get("/health/db")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "ok"
        assert body["missing_tables"] == []


class TestVoiceRoutes:

    async def test_languages(self, client):
        response = await client.get("/api/voice/languages")

        assert response.status_code == 200
        codes = [language["code"] for language in response.json()]
        assert "hi" in codes
        assert "en" in codes
        assert len(codes) == 10

    async def test_transcript(self, client, seeded_catalog, test_recorder):
        response = await client.post(
            "/api/voice/transcript",
            json={"transcript": "5 kg aloo 40, 2 kg pyaz 30", "language": "hi", "shop_id": 1},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert [item["name"] for item in body["items"]] == ["aloo", "pyaz"]
        assert [match["match_type"] for match in body["matches"]] == ["exact", "exact"]
        assert [Decimal(line["rate"]) for line in body["slip_lines"]] == [Decimal("25"), Decimal("30")]
        assert body["slip_lines"][0]["unit"] == "kg"

        await test_recorder.wait_pending()
        analytics = (await client.get("/api/metrics/voice", params={"shop_id": 1})).json()
        assert analytics["summary"]["total_attempts"] == 1
        assert analytics["summary"]["successful_attempts"] == 1

    async def test_transcript_without_items(self, client, seeded_catalog):
        response = await client.post("/api/voice/transcript", json={"transcript": "namaste", "language": "hi"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "no_items"
        assert body["message"]
        assert body["leftover"] == "namaste"

    async def test_unsupported_language(self, client):
        response = await client.post("/api/voice/transcript", json={"transcript": "5 kg aloo", "language": "xx"})

        assert response.status_code == 400
        assert response.json()["error_type"] == "input_error"

    async def test_process_audio(self, client, seeded_catalog, fake_transcriber):
        response = await client.post(
            "/api/voice/process",
            files={"audio": ("note.webm", b"fake-audio-bytes", "audio/webm")},
            data={"language": "hi-IN", "shop_id": "3"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["language_code"] == "hi-IN"
        assert body["transcript"] == "5 kg aloo 40, 2 kg pyaz 30"
        assert len(body["slip_lines"]) == 2
        # Staged audio is gone once the request completes
        [path] = fake_transcriber.seen_paths
        assert path.suffix == ".webm"
        assert not path.exists()

    async def test_process_rejects_non_audio(self, client, fake_transcriber):
        response = await client.post(
            "/api/voice/process",
            files={"audio": ("notes.txt", b"hello", "text/plain")},
            data={"language": "hi"},
        )

        assert response.status_code == 400
        assert fake_transcriber.calls == []

    async def test_process_rejects_empty_audio(self, client):
        response = await client.post(
            "/api/voice/process",
            files={"audio": ("note.webm", b"", "audio/webm")},
            data={"language": "hi"},
        )

        assert response.status_code == 400
        assert "empty" in response.json()["detail"]

    @pytest.mark.parametrize("field,value", [("shop_id", "0"), ("shop_id", "-3"), ("slip_id", "0")])
    async def test_process_rejects_non_positive_ids(self, client, fake_transcriber, field, value):
        response = await client.post(
            "/api/voice/process",
            files={"audio": ("note.webm", b"fake-audio-bytes", "audio/webm")},
            data={"language": "hi", field: value},
        )

        assert response.status_code == 422
        assert fake_transcriber.calls == []

    async def test_speech_service_failure(self, client, fake_transcriber):
        fake_transcriber.error = AcquisitionError("Speech service error: quota exceeded", retryable=True)

        response = await client.post(
            "/api/voice/process",
            files={"audio": ("note.webm", b"fake-audio-bytes", "audio/webm")},
            data={"language": "hi"},
        )

        assert response.status_code == 502
        body = response.json()
        assert body["error_type"] == "acquisition_error"
        assert body["retryable"] is True
        assert body["manual_entry"] is True
        assert not fake_transcriber.seen_paths[0].exists()


class TestMetricsRoutes:

    async def test_empty_analytics(self, client):
        response = await client.get("/api/metrics/voice")

        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["total_attempts"] == 0
        assert body["summary"]["success_rate"] is None
        assert body["errors"] == []
        assert body["timeframe"] == {"from": "all time", "to": "present"}

    async def test_inverted_range(self, client):
        response = await client.get(
            "/api/metrics/voice",
            params={"start_date": "2025-02-01", "end_date": "2025-01-01"},
        )

        assert response.status_code == 400
