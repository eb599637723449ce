"""
tests/test_interaction_routes.py -- Integration tests for likes, comments and shares.

Coverage:
  - Likes: like -> isLiked/likeCount 1, duplicate like 400, unlike -> 0,
    private stories of others are 403 for like and unlike alike,
    author's daily score and updated_user_id on each mutation
  - Comments: 201 with commentCount and author score, trimming, empty 400,
    list ordering with usernames, private story comments hidden from others
  - Shares: token shape and expiry, resolve, unknown 404, expired 410
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import auth_headers
from core.database import shares


@pytest.fixture(scope="module")
def story(api_client: tuple[TestClient, str, int]) -> dict:
    """A public story by "mimi" that the tests below interact with."""
    client, token, _uid = api_client
    resp = client.post("/stories", json={"content": "pet me"}, headers=auth_headers(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestLikes:
    def test_like_then_unlike(
        self, api_client: tuple[TestClient, str, int], other_user: tuple[str, int], story: dict
    ) -> None:
        client, _token, uid = api_client
        other_token, _other_uid = other_user
        headers = auth_headers(other_token)

        liked = client.post("/likes", json={"story_id": story["id"]}, headers=headers)
        assert liked.status_code == 200, liked.text
        data = liked.json()
        assert data["isLiked"] is True
        assert data["likeCount"] == 1
        assert data["updated_user_id"] == uid
        assert data["daily_meomeo_score"] >= 2  # the story itself + this like

        status = client.get(f"/likes?story_id={story['id']}", headers=headers).json()
        assert status == {"isLiked": True, "likeCount": 1}

        duplicate = client.post("/likes", json={"story_id": story["id"]}, headers=headers)
        assert duplicate.status_code == 400
        assert duplicate.json()["message"] == "Story already liked"

        unliked = client.delete(f"/likes?story_id={story['id']}", headers=headers)
        assert unliked.status_code == 200
        assert unliked.json()["isLiked"] is False
        assert unliked.json()["likeCount"] == 0
        assert unliked.json()["daily_meomeo_score"] == data["daily_meomeo_score"] - 1

    def test_like_missing_story(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.post("/likes", json={"story_id": 999999}, headers=auth_headers(token))
        assert resp.status_code == 404

    def test_like_requires_auth(self, api_client: tuple[TestClient, str, int], story: dict) -> None:
        client, _token, _uid = api_client
        assert client.post("/likes", json={"story_id": story["id"]}).status_code == 401

    def test_cannot_like_others_private_story(
        self, api_client: tuple[TestClient, str, int], other_user: tuple[str, int]
    ) -> None:
        client, token, _uid = api_client
        other_token, _other_uid = other_user
        private = client.post(
            "/stories", json={"content": "hidden", "visibility": "private"}, headers=auth_headers(token)
        ).json()
        resp = client.post("/likes", json={"story_id": private["id"]}, headers=auth_headers(other_token))
        assert resp.status_code == 403

    def test_cannot_unlike_others_private_story(
        self, api_client: tuple[TestClient, str, int], other_user: tuple[str, int]
    ) -> None:
        client, token, _uid = api_client
        other_token, _other_uid = other_user
        private = client.post(
            "/stories", json={"content": "secret", "visibility": "private"}, headers=auth_headers(token)
        ).json()
        resp = client.delete(f"/likes?story_id={private['id']}", headers=auth_headers(other_token))
        assert resp.status_code == 403
        assert "likeCount" not in resp.json()
        assert "daily_meomeo_score" not in resp.json()
        # The owner can still clear their own like state.
        assert client.delete(f"/likes?story_id={private['id']}", headers=auth_headers(token)).status_code == 200

    def test_missing_story_id_query(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        assert client.get("/likes", headers=auth_headers(token)).status_code == 400


class TestComments:
    def test_comment_and_list(
        self, api_client: tuple[TestClient, str, int], other_user: tuple[str, int], story: dict
    ) -> None:
        client, token, uid = api_client
        other_token, _other_uid = other_user

        first = client.post(
            "/comments", json={"story_id": story["id"], "content": "  so soft  "}, headers=auth_headers(other_token)
        )
        assert first.status_code == 201, first.text
        data = first.json()
        assert data["content"] == "so soft"
        assert data["username"] == "tom"
        assert data["commentCount"] == 1
        assert data["updated_user_id"] == uid

        client.post("/comments", json={"story_id": story["id"], "content": "thanks"}, headers=auth_headers(token))

        listing = client.get(f"/comments?story_id={story['id']}")
        assert listing.status_code == 200
        body = listing.json()
        assert body["total"] == 2
        assert [c["content"] for c in body["comments"]] == ["so soft", "thanks"]
        assert [c["username"] for c in body["comments"]] == ["tom", "mimi"]

    def test_empty_comment_rejected(self, api_client: tuple[TestClient, str, int], story: dict) -> None:
        client, token, _uid = api_client
        resp = client.post("/comments", json={"story_id": story["id"], "content": "  "}, headers=auth_headers(token))
        assert resp.status_code == 400

    def test_oversized_comment_rejected(self, api_client: tuple[TestClient, str, int], story: dict) -> None:
        client, token, _uid = api_client
        resp = client.post(
            "/comments", json={"story_id": story["id"], "content": "x" * 2001}, headers=auth_headers(token)
        )
        assert resp.status_code == 400

    def test_private_story_comments_hidden(
        self, api_client: tuple[TestClient, str, int], other_user: tuple[str, int]
    ) -> None:
        client, token, _uid = api_client
        other_token, _other_uid = other_user
        private = client.post(
            "/stories", json={"content": "quiet", "visibility": "private"}, headers=auth_headers(token)
        ).json()
        assert client.get(f"/comments?story_id={private['id']}", headers=auth_headers(token)).status_code == 200
        assert client.get(f"/comments?story_id={private['id']}", headers=auth_headers(other_token)).status_code == 403


class TestShares:
    def test_create_and_resolve(self, api_client: tuple[TestClient, str, int], story: dict) -> None:
        client, token, _uid = api_client
        resp = client.post("/shares", json={"story_id": story["id"]}, headers=auth_headers(token))
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert len(data["token"]) == 64
        assert data["story_id"] == story["id"]
        assert data["expires_at"]

        resolved = client.get(f"/shares/{data['token']}")
        assert resolved.status_code == 200
        assert resolved.json() == {"story_id": story["id"], "visibility": "public"}

    def test_unknown_token(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/shares/" + "0" * 64)
        assert resp.status_code == 404

    def test_expired_token_is_gone(self, api_client: tuple[TestClient, str, int], story: dict) -> None:
        client, token, _uid = api_client
        share_token = client.post("/shares", json={"story_id": story["id"]}, headers=auth_headers(token)).json()["token"]
        engine = client.app.state.engine
        with engine.connect() as conn:
            conn.execute(
                shares.update().where(shares.c.token == share_token).values(expires_at="2000-01-01T00:00:00+00:00")
            )
            conn.commit()
        resp = client.get(f"/shares/{share_token}")
        assert resp.status_code == 410
        assert resp.json() == {"error": "Gone", "message": "Share link has expired", "statusCode": 410}

    def test_share_requires_auth(self, api_client: tuple[TestClient, str, int], story: dict) -> None:
        client, _token, _uid = api_client
        assert client.post("/shares", json={"story_id": story["id"]}).status_code == 401
