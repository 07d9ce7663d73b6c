"""测试配置和共享 Fixtures。"""

from datetime import datetime, timedelta, timezone

import pytest

from synaps.models import Profile
from synaps.services.matching_service import MatchingOptions
from synaps.services.profile_service import ProfileService, ProfileStore
from synaps.services.token_service import TokenStore


# ============================================================================
# Mock Services
# ============================================================================

class MockLLMService:
    """测试用 Mock LLM 服务。

    可以通过设置 response / chat_response 属性来控制返回值。
    可以通过设置 should_fail / chat_should_fail 来模拟失败。
    """

    def __init__(self):
        self.response = "{}"
        self.chat_response = "Who would you like to talk to today?"
        self.should_fail = False
        self.chat_should_fail = False
        self.call_count = 0
        self.chat_count = 0
        self.last_prompt = None
        self.last_messages = None
        self.last_system = None

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        self.call_count += 1
        self.last_prompt = prompt
        if self.should_fail:
            raise Exception("Mock LLM failure")
        return self.response

    def chat(self, messages, *, system=None, temperature=0.7, max_tokens=500) -> str:
        self.chat_count += 1
        self.last_messages = messages
        self.last_system = system
        if self.chat_should_fail:
            raise Exception("Mock chat failure")
        return self.chat_response


# ============================================================================
# Profile Fixtures
# ============================================================================

@pytest.fixture
def now() -> datetime:
    """固定的参考时间。"""
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def requester() -> Profile:
    """创建示例请求者 Profile。"""
    return Profile(
        id="user-1",
        display_name="Marta",
        interests=["Books"],
        mood="positive",
        current_intentions="Talk about philosophy of mind",
        connection_goals="Looking for support and calm talks",
        last_conversation_topics=["philosophy"],
    )


@pytest.fixture
def candidates() -> list[Profile]:
    """创建示例候选人列表（相对当前时间）。"""
    current = datetime.now(timezone.utc)
    return [
        Profile(
            id="user-2",
            display_name="Ola",
            interests=["Philosophy", "Art"],
            mood="Calm",
            updated_at=current - timedelta(hours=2),
        ),
        Profile(
            id="user-3",
            display_name="Bartek",
            interests=["Cooking"],
            mood="Energetic",
            updated_at=current - timedelta(days=1),
        ),
        Profile(
            id="user-4",
            display_name="Ewa",
            interests=["Music", "Books"],
            mood="Focused",
            updated_at=current - timedelta(minutes=10),
        ),
    ]


@pytest.fixture
def profile_store(requester, candidates) -> ProfileStore:
    """创建包含示例数据的 ProfileStore。"""
    store = ProfileStore()
    store.save(requester, touch=False)
    for profile in candidates:
        store.save(profile, touch=False)
    # 没有 display_name 的 profile 不应出现在候选人中
    store.save(Profile(id="user-5"), touch=False)
    return store


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def mock_llm() -> MockLLMService:
    """创建 Mock LLM 服务。"""
    return MockLLMService()


@pytest.fixture
def mock_llm_with_insights(mock_llm: MockLLMService) -> MockLLMService:
    """创建返回 insights JSON 的 Mock LLM。"""
    mock_llm.chat_response = "Sounds great, let's find someone who loves jazz."
    mock_llm.response = '''```json
{
    "current_intentions": "Discuss jazz records",
    "connection_goals": "Someone creative to brainstorm with",
    "conversation_topics": ["jazz", "vinyl"],
    "desired_conversation_type": "brainstorming",
    "energy_level": 8,
    "personality_traits": ["curious"],
    "mood_score": 0.9,
    "interests": ["Music", "Jazz"]
}
```'''
    return mock_llm


@pytest.fixture
def profile_service(profile_store, mock_llm) -> ProfileService:
    return ProfileService(profile_store, llm_service=mock_llm)


@pytest.fixture
def api(profile_store, mock_llm):
    """创建 Flask 测试客户端和已认证的请求头。"""
    import app as app_module

    tokens = TokenStore()
    bundle = app_module.build_services(
        store=profile_store,
        llm_service=mock_llm,
        tokens=tokens,
        matching_options=MatchingOptions(),
    )
    app_module.configure_services(bundle)
    app_module.app.config["TESTING"] = True
    client = app_module.app.test_client()
    headers = {"Authorization": f"Bearer {tokens.issue('user-1').token}"}
    return client, headers, bundle
