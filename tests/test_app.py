"""Flask API 集成测试。"""

import json

import pytest


def _post(client, url, headers, body):
    return client.post(url, headers=headers, data=json.dumps(body), content_type="application/json")


class TestAuth:
    def test_health_is_public(self, api):
        client, _, _ = api

        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}

    @pytest.mark.parametrize(
        "headers, error",
        [
            ({}, "unauthorized"),
            ({"Authorization": "Bearer nope"}, "invalid_token"),
        ],
    )
    def test_rejects_bad_tokens(self, api, headers, error):
        client, _, _ = api

        response = client.get("/api/profile", headers=headers)

        assert response.status_code == 401
        assert response.get_json()["error"] == error


class TestProfileEndpoints:
    def test_get_profile(self, api):
        client, headers, _ = api

        response = client.get("/api/profile", headers=headers)

        assert response.status_code == 200
        assert response.get_json()["userId"] == "user-1"

    def test_get_missing_profile(self, api):
        client, _, bundle = api
        token = bundle.tokens.issue("ghost").token

        response = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 404

    def test_patch_profile(self, api):
        client, headers, bundle = api

        response = client.patch(
            "/api/profile",
            headers=headers,
            data=json.dumps({"currentMood": "Calm <3", "interests": ["Jazz", "jazz"]}),
            content_type="application/json",
        )

        body = response.get_json()
        assert response.status_code == 200
        assert body["profile"]["currentMood"] == "Calm 3"
        assert bundle.profiles.get_profile("user-1").interests == ["Jazz"]

    def test_patch_without_fields(self, api):
        client, headers, _ = api

        response = _post(client, "/api/profile", headers, {"unknown": "x"})

        assert response.status_code == 400
        assert response.get_json()["error"] == "No fields to update"

    def test_patch_validation(self, api):
        client, headers, _ = api

        response = _post(client, "/api/profile", headers, {"interests": "jazz"})

        body = response.get_json()
        assert response.status_code == 400
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == "interests"


class TestMatchingEndpoints:
    def test_suggestions(self, api):
        client, headers, _ = api

        response = client.get("/api/suggestions", headers=headers)

        ids = [c["userId"] for c in response.get_json()["connections"]]
        assert ids == ["user-2", "user-4", "user-3"]

    def test_suggestions_topic(self, api):
        client, headers, _ = api

        response = client.get("/api/suggestions?topic=music", headers=headers)

        assert [c["userId"] for c in response.get_json()["connections"]] == ["user-4"]

    def test_find_matches(self, api):
        client, headers, _ = api

        response = _post(client, "/api/matches", headers, {"topic": "philosophy", "limit": 3})

        body = response.get_json()
        assert response.status_code == 200
        assert [m["userId"] for m in body["matches"]] == ["user-2"]
        assert body["matches"][0]["compatibilityScore"] == 70
        assert body["searchCriteria"]["topic"] == "philosophy"
        assert "appUrl" in body

    def test_find_matches_fallback(self, api):
        client, headers, _ = api

        response = _post(client, "/api/matches", headers, {"topic": "gardening"})

        body = response.get_json()
        assert body["fallbackMode"] is True
        assert body["totalFound"] == 3

    @pytest.mark.parametrize("body", [{"limit": 50}, {"limit": "lots"}, {"topic": 5}, {"mood": "x" * 101}])
    def test_find_matches_validation(self, api, body):
        client, headers, _ = api

        response = _post(client, "/api/matches", headers, body)

        assert response.status_code == 400

    @pytest.mark.parametrize("limit, expected", [("5.0", 3), ("2", 2), (2.0, 2)])
    def test_find_matches_numeric_limit_forms(self, api, limit, expected):
        """测试字符串或浮点形式的 limit 不会导致 500。"""
        client, headers, _ = api

        response = _post(client, "/api/matches", headers, {"limit": limit})

        assert response.status_code == 200
        assert response.get_json()["totalFound"] == expected

    def test_find_matches_without_profile(self, api):
        client, _, bundle = api
        token = bundle.tokens.issue("ghost").token

        response = _post(client, "/api/matches", {"Authorization": f"Bearer {token}"}, {})

        assert response.status_code == 404
        assert response.get_json()["error"] == "User profile not found"


class TestChatEndpoint:
    def test_chat(self, api, mock_llm_with_insights):
        client, headers, bundle = api

        response = _post(client, "/api/chat", headers, {
            "message": "I want to talk about jazz",
            "conversationHistory": [{"role": "assistant", "content": "Hi!"}],
        })

        body = response.get_json()
        assert response.status_code == 200
        assert body["response"] == mock_llm_with_insights.chat_response
        assert "timestamp" in body
        assert bundle.profiles.get_profile("user-1").last_conversation_topics == ["jazz", "vinyl"]

    def test_chat_requires_message(self, api):
        client, headers, _ = api

        response = _post(client, "/api/chat", headers, {})

        assert response.status_code == 400

    def test_chat_failure(self, api, mock_llm):
        client, headers, _ = api
        mock_llm.chat_should_fail = True

        response = _post(client, "/api/chat", headers, {"message": "hi"})

        assert response.status_code == 500


class TestConnectionEndpoints:
    def test_connect_and_read_messages(self, api):
        client, headers, bundle = api

        response = _post(client, "/api/connections", headers, {
            "connectedUserId": "user-2",
            "aiReasoning": "You both care about Philosophy!",
        })

        body = response.get_json()
        assert response.status_code == 200
        assert body["isNewConversation"] is True
        assert body["conversationUrl"].endswith(body["conversationId"])

        messages = client.get(f"/api/conversations/{body['conversationId']}/messages", headers=headers)
        assert len(messages.get_json()["messages"]) == 1

        outsider = {"Authorization": f"Bearer {bundle.tokens.issue('user-3').token}"}
        hidden = client.get(f"/api/conversations/{body['conversationId']}/messages", headers=outsider)
        assert hidden.status_code == 404

    def test_connect_twice(self, api):
        client, headers, _ = api

        first = _post(client, "/api/connections", headers, {"targetUserId": "user-4"}).get_json()
        second = _post(client, "/api/connections", headers, {"targetUserId": "user-4"}).get_json()

        assert second["conversationId"] == first["conversationId"]
        assert second["isNewConversation"] is False

    def test_connect_errors(self, api):
        client, headers, _ = api

        assert _post(client, "/api/connections", headers, {}).status_code == 400
        assert _post(client, "/api/connections", headers, {"targetUserId": "user-1"}).status_code == 400
        missing = _post(client, "/api/connections", headers, {"targetUserId": "nobody"})
        assert missing.status_code == 404
        assert missing.get_json()["error"] == "Target user not found"


class TestConversationHistoryEndpoint:
    def test_lists_callers_conversations(self, api):
        client, headers, _ = api
        created = _post(client, "/api/connections", headers, {"targetUserId": "user-2"}).get_json()

        response = client.get("/api/conversations", headers=headers)

        conversations = response.get_json()["conversations"]
        assert response.status_code == 200
        assert [c["conversationId"] for c in conversations] == [created["conversationId"]]
        assert conversations[0]["otherUser"]["displayName"] == "Ola"
        assert conversations[0]["lastMessage"].startswith("Hi! I'm connecting you with Ola")

    def test_empty_history(self, api):
        client, headers, _ = api

        assert client.get("/api/conversations", headers=headers).get_json() == {"conversations": []}

    def test_messages_rejects_malformed_id(self, api):
        client, headers, _ = api

        response = client.get("/api/conversations/not-a-uuid/messages", headers=headers)

        assert response.status_code == 400
        assert response.get_json()["details"][0]["field"] == "conversationId"

    def test_messages_unknown_id(self, api):
        client, headers, _ = api

        response = client.get("/api/conversations/123e4567-e89b-12d3-a456-426614174000/messages", headers=headers)

        assert response.status_code == 404


class TestOAuthEndpoints:
    """测试令牌签发、刷新和撤销。"""

    @pytest.fixture
    def oauth(self, api):
        client, _, bundle = api
        bundle.tokens.register_client("gpt-client", "s3cret")
        return client, {"client_id": "gpt-client", "client_secret": "s3cret"}

    def test_issued_token_opens_api(self, oauth):
        client, creds = oauth

        response = client.post("/oauth/token", data={**creds, "grant_type": "client_credentials", "user_id": "user-1"})

        body = response.get_json()
        assert response.status_code == 200
        assert body["token_type"] == "Bearer"
        assert 0 < body["expires_in"] <= 3600
        profile = client.get("/api/profile", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert profile.get_json()["userId"] == "user-1"

    def test_refresh_replaces_access_token(self, oauth):
        client, creds = oauth
        first = client.post("/oauth/token", data={**creds, "grant_type": "client_credentials", "user_id": "user-1"}).get_json()

        response = client.post("/oauth/token", data={
            **creds, "grant_type": "refresh_token", "refresh_token": first["refresh_token"],
        })

        second = response.get_json()
        assert response.status_code == 200
        assert second["refresh_token"] == first["refresh_token"]
        assert second["access_token"] != first["access_token"]
        old = client.get("/api/profile", headers={"Authorization": f"Bearer {first['access_token']}"})
        assert old.status_code == 401
        new = client.get("/api/profile", headers={"Authorization": f"Bearer {second['access_token']}"})
        assert new.status_code == 200

    def test_revoke(self, oauth):
        client, creds = oauth
        token = client.post("/oauth/token", data={**creds, "grant_type": "client_credentials", "user_id": "user-1"}).get_json()

        response = client.post("/oauth/revoke", data={**creds, "token": token["access_token"]})

        assert response.get_json() == {"revoked": True}
        denied = client.get("/api/profile", headers={"Authorization": f"Bearer {token['access_token']}"})
        assert denied.get_json()["error"] == "invalid_token"

    @pytest.mark.parametrize(
        "form, status, error",
        [
            ({"client_id": "gpt-client", "client_secret": "wrong", "grant_type": "client_credentials", "user_id": "u"}, 401, "invalid_client"),
            ({"grant_type": "client_credentials", "user_id": "u"}, 401, "invalid_client"),
            ({"client_id": "gpt-client", "client_secret": "s3cret", "grant_type": "password"}, 400, "unsupported_grant_type"),
            ({"client_id": "gpt-client", "client_secret": "s3cret", "grant_type": "client_credentials"}, 400, "invalid_request"),
            ({"client_id": "gpt-client", "client_secret": "s3cret", "grant_type": "refresh_token", "refresh_token": "nope"}, 400, "invalid_grant"),
        ],
    )
    def test_token_errors(self, oauth, form, status, error):
        client, _ = oauth

        response = client.post("/oauth/token", data=form)

        assert response.status_code == status
        assert response.get_json()["error"] == error

    def test_json_body_with_non_string_secret(self, oauth):
        client, _ = oauth

        response = _post(client, "/oauth/token", {}, {"client_id": "gpt-client", "client_secret": 123})

        assert response.status_code == 401


class TestImportMemory:
    def test_import(self, api, mock_llm):
        client, headers, _ = api
        mock_llm.response = '{"interests": ["Chess"], "communication_style": "brief"}'

        response = _post(client, "/api/import-memory", headers, {"memory": "Likes chess"})

        body = response.get_json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["imported_data"]["interests"] == ["Chess"]

    def test_import_requires_memory(self, api):
        client, headers, _ = api

        assert _post(client, "/api/import-memory", headers, {"memory": ""}).status_code == 400


def test_unknown_route(api):
    client, _, _ = api

    response = client.get("/api/unknown")

    assert response.status_code == 404
    assert "error" in response.get_json()
