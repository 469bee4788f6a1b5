"""End-to-end tests for comment routes."""

from datetime import timedelta

from fastapi.testclient import TestClient

from src.auth.security import create_access_token


class TestCommentAuth:
    def test_missing_token(self, client: TestClient, create_post) -> None:
        post = create_post()
        response = client.post(f"/posts/{post['id']}/comments", json={"content": "hi"})
        assert response.status_code == 401
        assert response.json() == {
            "error": "UnauthorizedError",
            "message": "Access token required",
        }

    def test_expired_token(self, client: TestClient, create_post, other_author) -> None:
        post = create_post()
        token = create_access_token(
            {
                "sub": other_author.id,
                "email": other_author.email,
                "username": other_author.username,
                "role": other_author.role.value,
            },
            expires_delta=timedelta(minutes=-5),
        )
        response = client.post(
            f"/posts/{post['id']}/comments",
            json={"content": "hi"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401
        assert response.json() == {
            "error": "UnauthorizedError",
            "message": "Token expired",
        }

    def test_invalid_token(self, client: TestClient, create_post) -> None:
        post = create_post()
        response = client.post(
            f"/posts/{post['id']}/comments",
            json={"content": "hi"},
            headers={"Authorization": "Bearer forged.token.value"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"
        assert client.get(f"/posts/{post['id']}/comments").json()["comments"] == []

    def test_bad_token_rejected_on_public_read(
        self, client: TestClient, create_post
    ) -> None:
        post = create_post()
        response = client.get(
            f"/posts/{post['id']}", headers={"Authorization": "Bearer garbage"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"


class TestCommentRoutes:
    def test_create_and_list(
        self, client: TestClient, create_post, other_headers
    ) -> None:
        post = create_post()
        response = client.post(
            f"/posts/{post['id']}/comments",
            json={"content": "  first!  "},
            headers=other_headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Comment created successfully"
        assert body["comment"]["content"] == "first!"

        listing = client.get(f"/posts/{post['id']}/comments").json()
        assert [c["content"] for c in listing["comments"]] == ["first!"]
        assert listing["pinned_comment_id"] is None

    def test_missing_content_is_validation_error(
        self, client: TestClient, create_post, other_headers
    ) -> None:
        post = create_post()
        response = client.post(
            f"/posts/{post['id']}/comments", json={}, headers=other_headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "ValidationError"
        assert body["message"] == "Validation failed"
        assert body["details"][0]["field"] == "content"

    def test_script_only_content_rejected(
        self, client: TestClient, create_post, other_headers
    ) -> None:
        post = create_post()
        response = client.post(
            f"/posts/{post['id']}/comments",
            json={"content": "<script>alert(1)</script>"},
            headers=other_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_missing_post(self, client: TestClient, other_headers) -> None:
        response = client.post(
            "/posts/nope/comments", json={"content": "hi"}, headers=other_headers
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Post not found"

    def test_nested_replies_in_listing(
        self, client: TestClient, create_post, create_comment
    ) -> None:
        post = create_post()
        root = create_comment(post["id"], "root")
        reply = create_comment(post["id"], "reply", parent_id=root["id"])
        create_comment(post["id"], "nested", parent_id=reply["id"])

        listing = client.get(f"/posts/{post['id']}/comments").json()
        top = listing["comments"][0]
        assert top["content"] == "root"
        assert top["replies"][0]["content"] == "reply"
        assert top["replies"][0]["replies"][0]["content"] == "nested"

    def test_depth_limit(
        self, client: TestClient, create_post, create_comment, other_headers
    ) -> None:
        post = create_post()
        parent = create_comment(post["id"], "level 0")
        for level in range(1, 6):
            parent = create_comment(post["id"], f"level {level}", parent_id=parent["id"])

        response = client.post(
            f"/posts/{post['id']}/comments/{parent['id']}/reply",
            json={"content": "too deep"},
            headers=other_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Maximum thread depth of 5 levels reached"

    def test_reply_message(
        self, client: TestClient, create_post, create_comment, other_headers
    ) -> None:
        post = create_post()
        root = create_comment(post["id"])
        response = client.post(
            f"/posts/{post['id']}/comments/{root['id']}/reply",
            json={"content": "agreed"},
            headers=other_headers,
        )
        assert response.status_code == 201
        assert response.json()["message"] == "Reply created successfully"
        assert response.json()["comment"]["parent_id"] == root["id"]

    def test_edit_by_owner_and_stranger(
        self,
        client: TestClient,
        create_post,
        create_comment,
        other_headers,
        author_headers,
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        path = f"/posts/{post['id']}/comments/{comment['id']}"

        forbidden = client.put(path, json={"content": "x"}, headers=author_headers)
        assert forbidden.status_code == 403
        assert forbidden.json()["message"] == "You can only edit your own comments"

        response = client.put(path, json={"content": "edited"}, headers=other_headers)
        assert response.status_code == 200
        assert response.json()["comment"]["content"] == "edited"
        assert response.json()["comment"]["like_count"] == 0

    def test_delete_cascades(
        self, client: TestClient, create_post, create_comment, other_headers
    ) -> None:
        post = create_post()
        root = create_comment(post["id"])
        create_comment(post["id"], "child", parent_id=root["id"])

        response = client.delete(
            f"/posts/{post['id']}/comments/{root['id']}", headers=other_headers
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Comment deleted successfully"}
        assert client.get(f"/posts/{post['id']}/comments").json()["comments"] == []

    def test_like_flow(
        self, client: TestClient, create_post, create_comment, author_headers
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        path = f"/posts/{post['id']}/comments/{comment['id']}/like"

        liked = client.post(path, headers=author_headers)
        assert liked.status_code == 201
        assert liked.json()["like_count"] == 1

        again = client.post(path, headers=author_headers)
        assert again.status_code == 400
        assert again.json()["message"] == "You have already liked this comment"

        unliked = client.delete(path, headers=author_headers)
        assert unliked.status_code == 200
        assert unliked.json()["like_count"] == 0

        missing = client.delete(path, headers=author_headers)
        assert missing.json()["message"] == "You have not liked this comment"

    def test_comments_disabled(
        self, client: TestClient, create_post, other_headers, author_headers
    ) -> None:
        post = create_post()
        client.patch(
            f"/posts/{post['id']}/comments/settings",
            json={"allow_comments": False},
            headers=author_headers,
        )
        listing = client.get(f"/posts/{post['id']}/comments")
        assert listing.status_code == 403
        assert listing.json()["message"] == "Comments are disabled for this post"


class TestPinRoutes:
    def test_pin_and_unpin(
        self, client: TestClient, create_post, create_comment, author_headers
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        path = f"/posts/{post['id']}/comments/{comment['id']}/pin"

        pinned = client.post(path, headers=author_headers)
        assert pinned.status_code == 200
        assert pinned.json() == {
            "message": "Comment pinned successfully",
            "pinned_comment_id": comment["id"],
        }
        listing = client.get(f"/posts/{post['id']}/comments").json()
        assert listing["pinned_comment_id"] == comment["id"]
        detail = client.get(f"/posts/{post['id']}").json()["post"]
        assert detail["pinned_comment_id"] == comment["id"]

        unpinned = client.delete(path, headers=author_headers)
        assert unpinned.json() == {"message": "Comment unpinned successfully"}

    def test_non_author_cannot_pin(
        self, client: TestClient, create_post, create_comment, other_headers
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        response = client.post(
            f"/posts/{post['id']}/comments/{comment['id']}/pin", headers=other_headers
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Only the post author can pin comments"

    def test_comment_from_other_post(
        self, client: TestClient, create_post, create_comment, author_headers
    ) -> None:
        post = create_post()
        other = create_post()
        foreign = create_comment(other["id"])
        response = client.post(
            f"/posts/{post['id']}/comments/{foreign['id']}/pin", headers=author_headers
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Comment does not belong to this post"

    def test_unpin_nothing_pinned(
        self, client: TestClient, create_post, create_comment, author_headers
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        response = client.delete(
            f"/posts/{post['id']}/comments/{comment['id']}/pin", headers=author_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "No comment is currently pinned"


class TestCommentCache:
    def test_listing_reflects_writes_immediately(
        self, client: TestClient, create_post, create_comment
    ) -> None:
        post = create_post()
        path = f"/posts/{post['id']}/comments"
        assert client.get(path).json()["comments"] == []

        create_comment(post["id"], "fresh")
        assert [c["content"] for c in client.get(path).json()["comments"]] == ["fresh"]

    def test_post_comment_count_refreshes(
        self, client: TestClient, create_post, create_comment
    ) -> None:
        post = create_post()
        assert client.get(f"/posts/{post['id']}").json()["post"]["comment_count"] == 0
        create_comment(post["id"])
        assert client.get(f"/posts/{post['id']}").json()["post"]["comment_count"] == 1

    def test_recent_comments(
        self, client: TestClient, create_post, create_comment
    ) -> None:
        post = create_post()
        create_comment(post["id"], "hello")
        body = client.get("/posts/recent-comments").json()
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "total_pages": 1}
        assert body["comments"][0]["post"]["slug"] == post["slug"]


class TestModerationRoutes:
    def test_hide_and_approve(
        self, client: TestClient, create_post, create_comment, author_headers
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        path = f"/posts/{post['id']}/comments/{comment['id']}/moderate"

        hidden = client.patch(path, json={"action": "hide"}, headers=author_headers)
        assert hidden.status_code == 200
        assert hidden.json()["message"] == "Comment hidden successfully"
        assert hidden.json()["comment"]["moderation_status"] == "HIDDEN"

        approved = client.patch(path, json={"action": "approve"}, headers=author_headers)
        assert approved.json()["message"] == "Comment approved successfully"
        assert approved.json()["comment"]["moderation_status"] == "APPROVED"

    def test_only_post_author(
        self, client: TestClient, create_post, create_comment, other_headers, admin_headers
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        path = f"/posts/{post['id']}/comments/{comment['id']}/moderate"
        for headers in (other_headers, admin_headers):
            response = client.patch(path, json={"action": "hide"}, headers=headers)
            assert response.status_code == 403
            assert response.json()["message"] == "Only the post author can moderate comments"

    def test_unknown_action(
        self, client: TestClient, create_post, create_comment, author_headers
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        response = client.patch(
            f"/posts/{post['id']}/comments/{comment['id']}/moderate",
            json={"action": "delete"},
            headers=author_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == 'Invalid action. Must be "approve" or "hide"'

    def test_missing_comment(self, client: TestClient, create_post, author_headers) -> None:
        post = create_post()
        response = client.patch(
            f"/posts/{post['id']}/comments/nope/moderate",
            json={"action": "hide"},
            headers=author_headers,
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Comment not found"

    def test_hidden_subtree_visible_to_post_author_only(
        self,
        client: TestClient,
        create_post,
        create_comment,
        author_headers,
        admin_headers,
    ) -> None:
        post = create_post()
        kept = create_comment(post["id"], "Fine")
        hidden = create_comment(post["id"], "Rude")
        create_comment(post["id"], "Reply to rude", parent_id=hidden["id"])
        path = f"/posts/{post['id']}/comments"

        # prime the shared cache before hiding
        assert len(client.get(path).json()["comments"]) == 2
        client.patch(
            f"{path}/{hidden['id']}/moderate", json={"action": "hide"}, headers=author_headers
        )

        public = client.get(path).json()["comments"]
        assert [c["id"] for c in public] == [kept["id"]]
        assert [c["id"] for c in client.get(path, headers=admin_headers).json()["comments"]] == [
            kept["id"]
        ]

        own = client.get(path, headers=author_headers).json()["comments"]
        assert [c["id"] for c in own] == [kept["id"], hidden["id"]]
        assert own[1]["moderation_status"] == "HIDDEN"
        assert len(own[1]["replies"]) == 1

        # the author's view must not leak into the shared cache
        assert [c["id"] for c in client.get(path).json()["comments"]] == [kept["id"]]

    def test_hidden_comment_left_out_of_recent(
        self, client: TestClient, create_post, create_comment, author_headers
    ) -> None:
        post = create_post()
        comment = create_comment(post["id"])
        client.patch(
            f"/posts/{post['id']}/comments/{comment['id']}/moderate",
            json={"action": "hide"},
            headers=author_headers,
        )
        body = client.get("/posts/recent-comments").json()
        assert body["comments"] == []
        assert body["pagination"]["total"] == 0


class TestModerationQueue:
    def test_lists_comments_with_reports(
        self,
        client: TestClient,
        create_post,
        create_comment,
        author_headers,
        admin_headers,
    ) -> None:
        post = create_post()
        quiet = create_comment(post["id"], "Quiet")
        flagged = create_comment(post["id"], "Flagged")
        client.post(
            f"/posts/{post['id']}/comments/{flagged['id']}/report",
            json={"reason": "Spam"},
            headers=admin_headers,
        )

        response = client.get(f"/posts/{post['id']}/moderation-queue", headers=author_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["post"] == {"id": post["id"], "title": post["title"], "slug": post["slug"]}
        assert [c["id"] for c in body["comments"]] == [flagged["id"], quiet["id"]]
        assert body["comments"][0]["moderation_status"] == "PENDING"
        assert [r["reason"] for r in body["comments"][0]["reports"]] == ["Spam"]
        assert body["comments"][1]["reports"] == []

    def test_filter_by_status(
        self, client: TestClient, create_post, create_comment, author_headers, admin_headers
    ) -> None:
        post = create_post()
        create_comment(post["id"], "Quiet")
        flagged = create_comment(post["id"], "Flagged")
        client.post(
            f"/posts/{post['id']}/comments/{flagged['id']}/report",
            json={"reason": "Spam"},
            headers=admin_headers,
        )

        body = client.get(
            f"/posts/{post['id']}/moderation-queue",
            params={"status": "PENDING"},
            headers=author_headers,
        ).json()
        assert [c["id"] for c in body["comments"]] == [flagged["id"]]

    def test_non_author_forbidden(
        self, client: TestClient, create_post, other_headers
    ) -> None:
        post = create_post()
        response = client.get(f"/posts/{post['id']}/moderation-queue", headers=other_headers)
        assert response.status_code == 403
        assert response.json()["message"] == (
            "Only the post author can view the moderation queue"
        )

    def test_requires_auth(self, client: TestClient, create_post) -> None:
        post = create_post()
        response = client.get(f"/posts/{post['id']}/moderation-queue")
        assert response.status_code == 401


class TestTopCommenter:
    def test_badge_after_threshold(
        self, client: TestClient, create_post, create_comment, author_headers
    ) -> None:
        posts = [create_post() for _ in range(2)]
        for i in range(5):
            create_comment(posts[i % 2]["id"], f"Comment {i}")
        create_comment(posts[0]["id"], "Author reply", headers=author_headers)

        comments = client.get(f"/posts/{posts[0]['id']}/comments").json()["comments"]
        by_user = {c["username"]: c["is_top_commenter"] for c in comments}
        assert by_user == {"bob": True, "alice": False}

    def test_no_badge_below_threshold(
        self, client: TestClient, create_post, create_comment
    ) -> None:
        post = create_post()
        for i in range(4):
            create_comment(post["id"], f"Comment {i}")
        comments = client.get(f"/posts/{post['id']}/comments").json()["comments"]
        assert not any(c["is_top_commenter"] for c in comments)
