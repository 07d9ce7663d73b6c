"""数据模型单元测试。"""

from datetime import datetime, timezone

import pytest

from synaps.models import ChatTurn, Conversation, Insights, MatchCandidate, MatchResult, Profile
from synaps.models.profile import MAX_ITEM_LENGTH, MAX_LIST_ITEMS, normalize_tags, parse_timestamp


class TestNormalizeTags:
    """测试标签规范化。"""

    def test_trims_and_dedupes_case_insensitively(self):
        assert normalize_tags(["  Jazz ", "jazz", "JAZZ", "Art"]) == ["Jazz", "Art"]

    def test_drops_empty_and_non_string_items(self):
        assert normalize_tags(["", "   ", None, 3, "Books"]) == ["Books"]

    def test_truncates_long_items(self):
        result = normalize_tags(["x" * 500])

        assert len(result[0]) == MAX_ITEM_LENGTH

    def test_caps_item_count(self):
        result = normalize_tags([f"tag-{i}" for i in range(MAX_LIST_ITEMS + 20)])

        assert len(result) == MAX_LIST_ITEMS

    @pytest.mark.parametrize("value", [None, "jazz", 42])
    def test_non_list_values(self, value):
        assert normalize_tags(value) == []


class TestParseTimestamp:
    """测试时间戳解析。"""

    def test_parses_zulu_suffix(self):
        parsed = parse_timestamp("2024-06-01T10:00:00Z")

        assert parsed == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)

    def test_naive_values_are_utc(self):
        parsed = parse_timestamp(datetime(2024, 6, 1, 10, 0))

        assert parsed.tzinfo is timezone.utc

    @pytest.mark.parametrize("value", [None, "", "yesterday", 1717236000])
    def test_unparseable_values(self, value):
        assert parse_timestamp(value) is None


class TestProfile:
    """测试 Profile 数据类。"""

    def test_default_values(self):
        """测试默认值。"""
        profile = Profile(id="u1")

        assert profile.display_name == ""
        assert profile.interests == []
        assert profile.last_conversation_topics == []
        assert profile.updated_at is None

    def test_from_dict_with_store_keys(self):
        """测试 from_dict 处理存储格式。"""
        data = {
            "id": "u1",
            "display_name": "Ola",
            "interests": ["Philosophy"],
            "mood": "Calm",
            "last_conversation_topics": ["ethics"],
            "updated_at": "2024-06-01T10:00:00+00:00",
        }

        profile = Profile.from_dict(data)

        assert profile.display_name == "Ola"
        assert profile.last_conversation_topics == ["ethics"]
        assert profile.updated_at.year == 2024

    def test_from_dict_with_api_keys(self):
        """测试 from_dict 处理 camelCase 格式。"""
        data = {
            "userId": "u2",
            "displayName": "Ewa",
            "currentMood": "Focused",
            "conversationTopics": ["music"],
            "connectionGoals": "learn guitar",
        }

        profile = Profile.from_dict(data)

        assert profile.id == "u2"
        assert profile.mood == "Focused"
        assert profile.last_conversation_topics == ["music"]
        assert profile.connection_goals == "learn guitar"

    def test_from_dict_with_missing_fields(self):
        """测试 from_dict 处理缺失字段。"""
        profile = Profile.from_dict({"id": "u3", "interests": None, "mood": None})

        assert profile.interests == []
        assert profile.mood == ""

    def test_with_updates_renormalizes(self):
        profile = Profile(id="u1", interests=["Art"])

        updated = profile.with_updates(interests=[" Jazz", "jazz"])

        assert updated.interests == ["Jazz"]
        assert profile.interests == ["Art"]

    def test_public_dict_uses_api_names(self):
        profile = Profile(id="u1", display_name="Ola", mood="Calm", last_conversation_topics=["ethics"])

        data = profile.to_public_dict()

        assert data["userId"] == "u1"
        assert data["currentMood"] == "Calm"
        assert data["conversationTopics"] == ["ethics"]
        assert data["updatedAt"] is None

    def test_store_row_round_trip(self):
        profile = Profile(
            id="u1",
            display_name="Ola",
            interests=["Art"],
            updated_at="2024-06-01T10:00:00Z",
        )

        assert Profile.from_dict(profile.to_dict()) == profile


class TestInsights:
    """测试 Insights 数据类。"""

    @pytest.mark.parametrize(
        "score, label",
        [(0.9, "positive"), (0.71, "positive"), (0.7, "neutral"), (0.5, "neutral"), (0.4, "reflective"), (0.0, "reflective")],
    )
    def test_mood_label(self, score, label):
        assert Insights(mood_score=score).mood_label() == label

    def test_from_dict_clamps_values(self):
        insights = Insights.from_dict({"energy_level": 42, "mood_score": 3, "current_intentions": "x" * 300})

        assert insights.energy_level == 10
        assert insights.mood_score == 1.0
        assert len(insights.current_intentions) == 100

    def test_from_dict_defaults_bad_values(self):
        insights = Insights.from_dict({"energy_level": "high", "mood_score": "great"})

        assert insights.energy_level == 5
        assert insights.mood_score == 0.5
        assert insights.interests == []


class TestMatchModels:
    """测试匹配结果数据类。"""

    def test_candidate_to_dict(self):
        profile = Profile(id="u2", display_name="Ola", interests=["Art"])
        candidate = MatchCandidate(
            profile=profile,
            compatibility_score=70,
            reasoning="Because.",
            last_active_label="Just now",
            shared_interests=["Art"],
        )

        data = candidate.to_dict()

        assert data["userId"] == "u2"
        assert data["compatibilityScore"] == 70
        assert data["currentMood"] == "Open to chat"
        assert data["sharedInterests"] == ["Art"]
        assert data["lastActive"] == "Just now"

    def test_result_to_dict(self):
        result = MatchResult(message="none", fallback_mode=True, search_criteria={"topic": "art"})

        data = result.to_dict()

        assert data == {
            "matches": [],
            "totalFound": 0,
            "message": "none",
            "fallbackMode": True,
            "searchCriteria": {"topic": "art"},
        }


class TestConversationModels:
    """测试对话数据类。"""

    def test_conversation_involves_both_users(self):
        conversation = Conversation(user1_id="a", user2_id="b")

        assert conversation.involves("a")
        assert conversation.involves("b")
        assert not conversation.involves("c")
        assert conversation.id

    def test_chat_turn_to_dict_hides_insights(self):
        turn = ChatTurn(response="Hi", insights={"mood_score": 0.9})

        data = turn.to_dict()

        assert set(data) == {"response", "timestamp"}
