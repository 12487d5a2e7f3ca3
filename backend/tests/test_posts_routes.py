"""
Inkwell Backend — Post Endpoint Tests
=======================================

What we test:
    ✅ Authentication gate: missing vs invalid token
    ✅ Create/read/update/delete with the author embedded
    ✅ Only the author can update or delete; 404 before 403
    ✅ Pagination parameters and envelope
    ✅ Stored content is entity-escaped and rich-text filtered
    ✅ AI drafting: defaults, validation, per-user limit, upstream failures
"""

import asyncio
import uuid

import pytest

from inkwell.exceptions import LLMServiceError, RateLimitExceededError
from inkwell.services.post_service import post_service


def auth(token: str) -> dict:
    return {"x-auth-token": token}


async def create_post(client, token, title="Hello", content="First post"):
    response = await client.post(
        "/api/posts", json={"title": title, "content": content}, headers=auth(token)
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthenticationGate:

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.post("/api/posts", json={"title": "t", "content": "c"})
        assert response.status_code == 401
        assert response.json()["error"] == "no_credential"
        assert response.json()["message"] == "No token, authorization denied"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.post(
            "/api/posts", json={"title": "t", "content": "c"}, headers=auth("garbage")
        )
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credential"
        assert response.json()["message"] == "Token is not valid"

    @pytest.mark.asyncio
    async def test_public_reads_need_no_token(self, client):
        response = await client.get("/api/posts")
        assert response.status_code == 200


class TestOwnershipScenario:

    @pytest.mark.asyncio
    async def test_only_author_can_delete(self, client, register):
        token_a, user_a = await register("alice")
        token_b, _ = await register("bob")
        post = await create_post(client, token_a)
        assert post["author"] == {"id": user_a, "username": "alice"}

        forbidden = await client.delete(f"/api/posts/{post['id']}", headers=auth(token_b))
        assert forbidden.status_code == 403
        assert forbidden.json()["error"] == "forbidden"

        # Still there after the refused delete
        assert (await client.get(f"/api/posts/{post['id']}")).status_code == 200

        deleted = await client.delete(f"/api/posts/{post['id']}", headers=auth(token_a))
        assert deleted.status_code == 200
        assert deleted.json() == {
            "message": "Post deleted successfully",
            "deleted_post": {"id": post["id"], "title": "Hello"},
        }

        missing = await client.get(f"/api/posts/{post['id']}")
        assert missing.status_code == 404
        assert missing.json()["message"] == "Post not found"

    @pytest.mark.asyncio
    async def test_only_author_can_update(self, client, register):
        token_a, _ = await register("alice")
        token_b, _ = await register("bob")
        post = await create_post(client, token_a)

        forbidden = await client.put(
            f"/api/posts/{post['id']}",
            json={"title": "Hijacked", "content": "x"},
            headers=auth(token_b),
        )
        assert forbidden.status_code == 403
        assert forbidden.json()["message"] == "Access denied: You can only edit your own posts"

        updated = await client.put(
            f"/api/posts/{post['id']}",
            json={"title": " Edited ", "content": "New body"},
            headers=auth(token_a),
        )
        assert updated.status_code == 200
        assert updated.json()["title"] == "Edited"
        assert updated.json()["content"] == "New body"

        fetched = (await client.get(f"/api/posts/{post['id']}")).json()
        assert fetched["title"] == "Edited"

    @pytest.mark.asyncio
    async def test_missing_post_is_404_even_for_non_owner(self, client, register):
        token, _ = await register("alice")
        response = await client.delete(f"/api/posts/{uuid.uuid4()}", headers=auth(token))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_posts_leave_no_lock_entries(self, client, register):
        token, _ = await register("alice")
        for _ in range(50):
            missing = f"/api/posts/{uuid.uuid4()}"
            assert (await client.delete(missing, headers=auth(token))).status_code == 404
            response = await client.put(
                missing, json={"title": "t", "content": "c"}, headers=auth(token)
            )
            assert response.status_code == 404
        assert len(post_service._post_locks) == 0

    @pytest.mark.asyncio
    async def test_malformed_id(self, client, register):
        token, _ = await register("alice")
        assert (await client.get("/api/posts/not-a-uuid")).json()["message"] == "Invalid post ID"
        response = await client.delete("/api/posts/not-a-uuid", headers=auth(token))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_concurrent_updates_by_author_both_apply(self, client, register):
        token, _ = await register("alice")
        post = await create_post(client, token)
        responses = await asyncio.gather(
            *(
                client.put(
                    f"/api/posts/{post['id']}",
                    json={"title": f"v{i}", "content": "body"},
                    headers=auth(token),
                )
                for i in range(3)
            )
        )
        assert all(r.status_code == 200 for r in responses)
        final = (await client.get(f"/api/posts/{post['id']}")).json()
        assert final["title"] in {"v0", "v1", "v2"}


class TestCreateAndValidate:

    @pytest.mark.asyncio
    async def test_content_is_escaped_before_storage(self, client, register):
        token, _ = await register("alice")
        post = await create_post(
            client, token, title="<b>Bold</b>", content="<script>alert(1)</script>Hi"
        )
        assert post["title"] == "&lt;b&gt;Bold&lt;/b&gt;"
        assert "<script>" not in post["content"]
        assert post["content"].startswith("&lt;script&gt;")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload, message",
        [
            ({"title": "   ", "content": "body"}, "Title cannot be empty"),
            ({"title": "t" * 201, "content": "body"}, "Title must be less than 200 characters"),
            ({"title": "ok", "content": ""}, "Content cannot be empty"),
            ({"title": "ok", "content": "c" * 10_001}, "Content must be less than 10,000 characters"),
        ],
    )
    async def test_field_rules(self, client, register, payload, message):
        token, _ = await register("alice")
        response = await client.post("/api/posts", json=payload, headers=auth(token))
        assert response.status_code == 400
        assert response.json()["message"] == message


class TestListPosts:

    @pytest.mark.asyncio
    async def test_pagination_envelope(self, client, register):
        token, _ = await register("alice")
        for i in range(3):
            await create_post(client, token, title=f"Post {i}")

        response = await client.get("/api/posts", params={"page": 1, "limit": 2})
        assert response.status_code == 200
        body = response.json()
        assert len(body["posts"]) == 2
        assert body["pagination"] == {
            "current_page": 1,
            "total_pages": 2,
            "total_posts": 3,
            "has_next": True,
            "has_prev": False,
        }
        assert body["posts"][0]["author"]["username"] == "alice"

        second = (await client.get("/api/posts", params={"page": 2, "limit": 2})).json()
        assert len(second["posts"]) == 1
        assert second["pagination"]["has_prev"] is True
        assert second["pagination"]["has_next"] is False

    @pytest.mark.asyncio
    async def test_empty_feed(self, client):
        body = (await client.get("/api/posts")).json()
        assert body["posts"] == []
        assert body["pagination"]["total_pages"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"page": 0},
            {"limit": 0},
            {"limit": 51},
            {"page": -3},
            {"page": 10**20},
            {"page": 2**31 // 10 + 2, "limit": 10},
        ],
    )
    async def test_invalid_pagination(self, client, params):
        response = await client.get("/api/posts", params=params)
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid pagination parameters"


class TestGenerate:

    @pytest.mark.asyncio
    async def test_defaults_are_applied_and_echoed(self, client, register, fake_generator):
        token, _ = await register("alice")
        response = await client.post(
            "/api/posts/generate", json={"topic": "  Urban gardening  "}, headers=auth(token)
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "title": "On Urban gardening",
            "content": "A generated body.",
            "topic": "Urban gardening",
            "options": {"tone": "professional", "length": "medium"},
        }
        topic, options = fake_generator.calls[0]
        assert (options.tone, options.length) == ("professional", "medium")

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client, fake_generator):
        response = await client.post("/api/posts/generate", json={"topic": "Urban gardening"})
        assert response.status_code == 401
        assert fake_generator.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload, message",
        [
            ({"topic": "abcd"}, "Topic must be between 5 and 200 characters"),
            ({"topic": "Urban gardening", "tone": "angry"},
             "Invalid tone. Must be one of: casual, professional, academic"),
            ({"topic": "Urban gardening", "length": "epic"},
             "Invalid length. Must be one of: short, medium, long"),
        ],
    )
    async def test_validation(self, client, register, fake_generator, payload, message):
        token, _ = await register("alice")
        response = await client.post("/api/posts/generate", json=payload, headers=auth(token))
        assert response.status_code == 400
        assert response.json()["message"] == message
        assert fake_generator.calls == []

    @pytest.mark.asyncio
    async def test_per_user_hourly_limit(self, client, register):
        token_a, _ = await register("alice")
        token_b, _ = await register("bob")
        for _ in range(5):
            ok = await client.post(
                "/api/posts/generate", json={"topic": "Urban gardening"}, headers=auth(token_a)
            )
            assert ok.status_code == 200

        limited = await client.post(
            "/api/posts/generate", json={"topic": "Urban gardening"}, headers=auth(token_a)
        )
        assert limited.status_code == 429
        assert limited.json()["retry_after"] == 60

        other_user = await client.post(
            "/api/posts/generate", json={"topic": "Urban gardening"}, headers=auth(token_b)
        )
        assert other_user.status_code == 200

    @pytest.mark.asyncio
    async def test_upstream_failure_is_503(self, client, register, fake_generator):
        token, _ = await register("alice")
        fake_generator.error = LLMServiceError()
        response = await client.post(
            "/api/posts/generate", json={"topic": "Urban gardening"}, headers=auth(token)
        )
        assert response.status_code == 503
        assert response.json()["error"] == "service_unavailable"

    @pytest.mark.asyncio
    async def test_upstream_quota_is_429(self, client, register, fake_generator):
        token, _ = await register("alice")
        fake_generator.error = RateLimitExceededError(retry_after=1, message="AI service rate limit reached.")
        response = await client.post(
            "/api/posts/generate", json={"topic": "Urban gardening"}, headers=auth(token)
        )
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
