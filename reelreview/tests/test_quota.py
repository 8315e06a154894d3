"""
Tests for temporary storage quota accounting.
"""

import pytest

from reelreview.db.models import Version, VideoSource
from reelreview.errors import QuotaExceeded
from reelreview.quota import (
    temporary_storage_used, check_quota, format_bytes, percent_used, storage_usage,
)

from conftest import make_submission, auth_headers


class TestUsage:

    def test_counts_submissions_and_versions(self, db, users):
        submission = make_submission(db, users["submitter"], firebase_path="videos/a.mp4", size=100)
        db.add(Version(
            submission_id=submission.id, root_submission_id=submission.id, version_number=1,
            video_source=VideoSource.FIREBASE, embed_url="x",
            firebase_video_path="videos/old.mp4", firebase_video_size=50,
        ))
        db.commit()
        assert temporary_storage_used(db) == 150

    def test_archived_and_empty_paths_excluded(self, db, users):
        make_submission(db, users["submitter"])  # Drive
        submission = make_submission(db, users["submitter"], firebase_path="videos/a.mp4", size=100)
        db.add(Version(
            submission_id=submission.id, root_submission_id=submission.id, version_number=1,
            video_source=VideoSource.GOOGLE_DRIVE, embed_url="x",
            firebase_video_path="", firebase_video_size=0,
        ))
        db.add(Version(
            submission_id=submission.id, root_submission_id=submission.id, version_number=2,
            video_source=VideoSource.FIREBASE, embed_url="x",
            firebase_video_path="", firebase_video_size=70,
        ))
        db.commit()
        assert temporary_storage_used(db) == 100

    def test_check_quota_boundary(self, db, users):
        make_submission(db, users["submitter"], firebase_path="videos/a.mp4", size=60)
        assert check_quota(db, 40, limit=100) == 60
        with pytest.raises(QuotaExceeded) as exc:
            check_quota(db, 41, limit=100)
        assert exc.value.used == 60
        assert exc.value.limit == 100
        assert exc.value.status_code == 413


class TestFormatting:

    @pytest.mark.parametrize("num_bytes,expected", [
        (512, "512 B"),
        (2048, "2.0 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
        (1024 * 1024 * 1024, "1.00 GB"),
    ])
    def test_format_bytes(self, num_bytes, expected):
        assert format_bytes(num_bytes) == expected

    def test_percent_used(self):
        assert percent_used(0, 100) == 0
        assert percent_used(505, 1000) == 51
        assert percent_used(200, 100) == 100
        assert percent_used(5, 0) == 0

    def test_storage_usage_payload(self, db, users):
        make_submission(db, users["submitter"], firebase_path="videos/a.mp4", size=256)
        usage = storage_usage(db, limit=1024)
        assert usage == {
            "used": 256,
            "limit": 1024,
            "usedFormatted": "256 B",
            "limitFormatted": "1.0 KB",
            "percentUsed": 25,
        }


class TestUsageAPI:

    def test_usage_endpoint(self, client, db, users):
        make_submission(db, users["submitter"], firebase_path="videos/a.mp4", size=1024)
        response = client.get("/api/v1/storage/usage", headers=auth_headers(users["submitter"]))
        assert response.status_code == 200
        data = response.json()
        assert data["used"] == 1024
        assert data["limit"] == 1024 * 1024 * 1024
        assert data["limitFormatted"] == "1.00 GB"

    def test_usage_requires_auth(self, client):
        assert client.get("/api/v1/storage/usage").status_code == 401
