#!/usr/bin/env python3
"""
Archive approved submissions still on temporary storage.

Safe by default (dry-run). Use --apply to move the videos to Google Drive.
"""

import argparse


def main() -> int:
    parser = argparse.ArgumentParser(description="Archive approved submissions to Google Drive.")
    parser.add_argument("--apply", action="store_true", help="Archive for real (default: dry-run)")
    parser.add_argument("--limit", type=int, default=0, help="Stop after N submissions (0 = all)")
    args = parser.parse_args()

    import logging
    logging.basicConfig(level=logging.INFO)

    from reelreview.archive import ArchiveService, temporary_paths_for
    from reelreview.db.models import Submission, SubmissionStatus, VideoSource
    from reelreview.db.session import get_db_session, init_db
    from reelreview.quota import format_bytes
    from reelreview.storage import get_archive_storage

    init_db()

    if args.apply and not get_archive_storage().configured:
        print("Google Drive is not configured; nothing archived.")
        return 1

    archived = 0
    failed = 0
    candidates = 0

    with get_db_session() as db:
        query = db.query(Submission).filter(
            Submission.status == SubmissionStatus.APPROVED,
            Submission.video_source == VideoSource.FIREBASE,
        ).order_by(Submission.created_at.asc())

        for submission in query.all():
            if not submission.firebase_video_path:
                continue
            candidates += 1
            paths = temporary_paths_for(db, submission)
            print(
                f"{submission.id} {submission.title!r} "
                f"{format_bytes(submission.firebase_video_size or 0)} ({len(paths)} temporary file(s))"
            )

            if args.apply:
                result = ArchiveService(db).archive(submission.id, log_prefix="[bulk-archive]")
                if result.success:
                    archived += 1
                else:
                    failed += 1
                    print(f"  failed: {result.error}")

            if args.limit and candidates >= args.limit:
                break

    mode = "APPLY" if args.apply else "DRY-RUN"
    print(f"[{mode}] Candidates: {candidates}")
    print(f"[{mode}] Archived: {archived}")
    print(f"[{mode}] Failed: {failed}")
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
