"""
Tests for API Contract
======================

Health, structured error envelopes, security headers and frame capture.
"""

from unittest.mock import AsyncMock, patch

import pytest

from reelreview.frames import (
    FrameCaptureUnavailable, build_ffmpeg_command, extract_frame, video_url_for_capture,
)

from conftest import make_submission, auth_headers


# =============================================================================
# Health
# =============================================================================

class TestHealthEndpoint:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "ok"
        assert "version" in data
        assert "timestamp" in data

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "frame-src https://drive.google.com" in response.headers["Content-Security-Policy"]
        assert "Strict-Transport-Security" not in response.headers


# =============================================================================
# Error envelope
# =============================================================================

class TestErrorEnvelope:

    def test_api_errors_are_structured(self, client, users):
        response = client.get("/api/v1/submissions/missing", headers=auth_headers(users["admin"]))
        assert response.status_code == 404
        assert response.json() == {
            "error": {"code": "not_found", "message": "Submission not found", "details": None}
        }

    def test_validation_errors_do_not_echo_input(self, client, users):
        response = client.post("/api/v1/comments", headers=auth_headers(users["admin"]), json={
            "submission_id": "x", "timestamp_seconds": "secret-value",
        })
        assert response.status_code == 422
        body = response.json()
        assert body["error"]["message"] == "Invalid request"
        assert "secret-value" not in response.text
        assert all(set(e) == {"loc", "msg", "type"} for e in body["error"]["details"]["errors"])

    def test_non_api_paths_keep_default_format(self, client):
        response = client.get("/not-a-route")
        assert response.status_code == 404
        assert "detail" in response.json()


# =============================================================================
# Frame capture
# =============================================================================

class TestFrames:

    def test_ffmpeg_command(self):
        cmd = build_ffmpeg_command("ffmpeg", "https://v.test/a.mp4", 12.5)
        assert cmd[cmd.index("-ss") + 1] == "12.500"
        assert cmd[cmd.index("-i") + 1] == "https://v.test/a.mp4"
        assert cmd[-1] == "pipe:1"

    def test_drive_preview_uses_download_url(self):
        assert video_url_for_capture("https://drive.google.com/file/d/abc/preview") == (
            "https://drive.google.com/uc?export=download&id=abc"
        )
        assert video_url_for_capture("") is None

    @pytest.mark.asyncio
    async def test_missing_ffmpeg(self):
        with patch("reelreview.frames.ffmpeg_available", return_value=False):
            with pytest.raises(FrameCaptureUnavailable):
                await extract_frame("https://v.test/a.mp4", 1.0)

    def test_frame_endpoint(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        fake = AsyncMock(return_value="data:image/jpeg;base64,AAAA")
        with patch("reelreview.api_submissions.extract_frame", new=fake):
            response = client.post(
                f"/api/v1/submissions/{submission.id}/frame",
                headers=auth_headers(users["reviewer"]),
                json={"timestamp_seconds": 3.5},
            )
        assert response.status_code == 200
        assert response.json() == {"imageDataUrl": "data:image/jpeg;base64,AAAA", "timestamp_seconds": 3.5}
        assert fake.await_args.args[0] == "https://drive.google.com/uc?export=download&id=abc123"

    def test_frame_requires_timestamp(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        response = client.post(
            f"/api/v1/submissions/{submission.id}/frame", headers=auth_headers(users["reviewer"]), json={},
        )
        assert response.status_code == 400

    def test_frame_without_ffmpeg_503(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        with patch("reelreview.frames.ffmpeg_available", return_value=False):
            response = client.post(
                f"/api/v1/submissions/{submission.id}/frame",
                headers=auth_headers(users["reviewer"]),
                json={"timestamp_seconds": 1},
            )
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "service_unavailable"
        assert "ffmpeg" in response.json()["error"]["message"]
