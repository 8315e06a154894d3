"""
Comment Threading Tests
=======================

Tree building, orphan handling, subtree deletion and annotations.
"""

from reelreview.comments import build_comment_tree, collect_descendants
from reelreview.db.models import Comment, SubmissionStatus

from conftest import make_submission, auth_headers


def _flat(id, parent=None):
    return {"id": id, "parent_comment_id": parent, "replies": []}


class TestBuildTree:

    def test_nests_replies(self):
        tree = build_comment_tree([_flat("a"), _flat("b", "a"), _flat("c", "b"), _flat("d")])
        assert [n["id"] for n in tree] == ["a", "d"]
        assert tree[0]["replies"][0]["id"] == "b"
        assert tree[0]["replies"][0]["replies"][0]["id"] == "c"

    def test_orphans_promoted_to_roots(self):
        tree = build_comment_tree([_flat("a"), _flat("b", "missing")])
        assert [n["id"] for n in tree] == ["a", "b"]

    def test_sibling_order_preserved(self):
        tree = build_comment_tree([_flat("p"), _flat("r2", "p"), _flat("r1", "p")])
        assert [n["id"] for n in tree[0]["replies"]] == ["r2", "r1"]

    def test_collect_descendants(self):
        children = {"a": ["b", "c"], "b": ["d"], "x": ["y"]}
        assert collect_descendants("a", children) == ["b", "c", "d"]
        assert collect_descendants("d", children) == []


class TestCommentAPI:

    def test_create_and_list(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        headers = auth_headers(users["reviewer"])

        response = client.post("/api/v1/comments", headers=headers, json={
            "submission_id": submission.id, "timestamp_seconds": 12.5, "content": "Cut earlier",
        })
        assert response.status_code == 201
        created = response.json()
        assert created["user_email"] == "reviewer@test.com"
        assert created["revision_round"] == 1

        client.post("/api/v1/comments", headers=headers, json={
            "submission_id": submission.id, "timestamp_seconds": 3, "content": "Intro",
        })
        listed = client.get("/api/v1/comments", params={"submission_id": submission.id}, headers=headers).json()
        assert [c["content"] for c in listed] == ["Intro", "Cut earlier"]

    def test_threaded_listing(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        reviewer = auth_headers(users["reviewer"])
        owner = auth_headers(users["submitter"])

        root = client.post("/api/v1/comments", headers=reviewer, json={
            "submission_id": submission.id, "timestamp_seconds": 10, "content": "Fix color",
        }).json()
        client.post("/api/v1/comments", headers=owner, json={
            "submission_id": submission.id, "timestamp_seconds": 10, "content": "Done",
            "parent_comment_id": root["id"],
        })

        tree = client.get(
            "/api/v1/comments", params={"submission_id": submission.id, "threaded": True}, headers=owner,
        ).json()
        assert len(tree) == 1
        assert tree[0]["replies"][0]["content"] == "Done"
        assert tree[0]["replies"][0]["user_email"] == "submitter@test.com"

    def test_comment_takes_current_revision_round(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        submission.revision_round = 3
        db.commit()
        response = client.post("/api/v1/comments", headers=auth_headers(users["reviewer"]), json={
            "submission_id": submission.id, "timestamp_seconds": 0, "content": "Round three",
        })
        assert response.json()["revision_round"] == 3

    def test_empty_comment_rejected(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        response = client.post("/api/v1/comments", headers=auth_headers(users["reviewer"]), json={
            "submission_id": submission.id, "timestamp_seconds": 0, "content": "   ",
        })
        assert response.status_code == 422

    def test_negative_timestamp_rejected(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        response = client.post("/api/v1/comments", headers=auth_headers(users["reviewer"]), json={
            "submission_id": submission.id, "timestamp_seconds": -1, "content": "x",
        })
        assert response.status_code == 422

    def test_attachment_with_pin(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        response = client.post("/api/v1/comments", headers=auth_headers(users["reviewer"]), json={
            "submission_id": submission.id, "timestamp_seconds": 4,
            "attachment_url": "https://cdn.test/shot.png",
            "attachment_pin_x": 0.25, "attachment_pin_y": 0.75, "attachment_pin_comment": "here",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["content"] == ""
        assert data["attachment_pin_x"] == 0.25
        assert data["attachment_pin_comment"] == "here"

    def test_non_http_attachment_dropped(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        response = client.post("/api/v1/comments", headers=auth_headers(users["reviewer"]), json={
            "submission_id": submission.id, "content": "see link",
            "attachment_url": "httpfoo:x",
        })
        assert response.status_code == 201
        assert response.json()["attachment_url"] is None

    def test_reply_to_other_submission_rejected(self, client, db, users):
        first = make_submission(db, users["submitter"])
        second = make_submission(db, users["submitter"])
        headers = auth_headers(users["reviewer"])
        root = client.post("/api/v1/comments", headers=headers, json={
            "submission_id": first.id, "timestamp_seconds": 0, "content": "root",
        }).json()
        response = client.post("/api/v1/comments", headers=headers, json={
            "submission_id": second.id, "timestamp_seconds": 0, "content": "reply",
            "parent_comment_id": root["id"],
        })
        assert response.status_code == 400

    def test_other_submitter_cannot_comment(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        response = client.post("/api/v1/comments", headers=auth_headers(users["other"]), json={
            "submission_id": submission.id, "timestamp_seconds": 0, "content": "hi",
        })
        assert response.status_code == 403

    def test_delete_removes_subtree(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        root = Comment(submission_id=submission.id, user_id=users["reviewer"].id, content="root")
        keep = Comment(submission_id=submission.id, user_id=users["reviewer"].id, content="keep")
        db.add_all([root, keep])
        db.commit()
        child = Comment(
            submission_id=submission.id, user_id=users["submitter"].id,
            content="child", parent_comment_id=root.id,
        )
        db.add(child)
        db.commit()
        db.add(Comment(
            submission_id=submission.id, user_id=users["reviewer"].id,
            content="grandchild", parent_comment_id=child.id,
        ))
        db.commit()
        root_id, keep_id = root.id, keep.id

        response = client.delete(f"/api/v1/comments/{root_id}", headers=auth_headers(users["reviewer"]))
        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted": 3}

        db.expire_all()
        assert [c.id for c in db.query(Comment).all()] == [keep_id]

    def test_only_author_or_admin_deletes(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        comment = Comment(submission_id=submission.id, user_id=users["reviewer"].id, content="mine")
        db.add(comment)
        db.commit()

        denied = client.delete(f"/api/v1/comments/{comment.id}", headers=auth_headers(users["submitter"]))
        assert denied.status_code == 403

        allowed = client.delete(f"/api/v1/comments/{comment.id}", headers=auth_headers(users["admin"]))
        assert allowed.status_code == 200

    def test_delete_missing_404(self, client, users):
        response = client.delete("/api/v1/comments/nope", headers=auth_headers(users["admin"]))
        assert response.status_code == 404


class TestAnnotationAPI:

    def test_reviewer_creates_and_lists(self, client, db, users):
        submission = make_submission(db, users["submitter"], status=SubmissionStatus.REVIEWING)
        headers = auth_headers(users["reviewer"])
        response = client.post("/api/v1/annotations", headers=headers, json={
            "submission_id": submission.id, "timestamp_seconds": 8, "note": "  audio drops  ",
        })
        assert response.status_code == 201
        assert response.json()["note"] == "audio drops"

        listed = client.get("/api/v1/annotations", params={"submission_id": submission.id}, headers=headers)
        assert [a["reviewer_email"] for a in listed.json()] == ["reviewer@test.com"]

    def test_submitter_cannot_annotate(self, client, db, users):
        submission = make_submission(db, users["submitter"])
        response = client.post("/api/v1/annotations", headers=auth_headers(users["submitter"]), json={
            "submission_id": submission.id, "timestamp_seconds": 0, "note": "n",
        })
        assert response.status_code == 403
