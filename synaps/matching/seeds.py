"""Demo profiles used to top up a thin candidate pool."""

from __future__ import annotations

from datetime import datetime, timezone

from synaps.models import Profile

_SEED_ROWS = (
    {
        "id": "seed-1",
        "display_name": "Janek Kluczek",
        "avatar_url": "https://images.unsplash.com/photo-1568602471122-7832951cc4c5?w=200&h=200&fit=crop&crop=face",
        "bio": "Technology entrepreneur and startup founder from Krakow",
        "mood": "Energetic",
        "interests": ["Technology", "Asian Literature", "Startups", "Innovation"],
        "current_intentions": "Looking for interesting conversations about technology and literature",
        "connection_goals": "Exchanging ideas and creative discussions",
    },
    {
        "id": "seed-2",
        "display_name": "Katarzyna Nowak",
        "avatar_url": "https://images.unsplash.com/photo-1494790108755-2616b612b3e2?w=150&h=150&fit=crop&crop=face",
        "bio": "Creative writer and book enthusiast from Warsaw",
        "mood": "Inspired",
        "interests": ["Writing", "Asian Literature", "Books", "Poetry", "Philosophy"],
        "current_intentions": "Want to discuss literature and creative writing",
        "connection_goals": "Creative partnerships and deep conversations",
    },
    {
        "id": "seed-3",
        "display_name": "Piotr Kowalski",
        "avatar_url": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=150&h=150&fit=crop&crop=face",
        "bio": "Mindfulness coach and personal development specialist",
        "mood": "Peaceful",
        "interests": ["Mindfulness", "Meditation", "Mental Health", "Philosophy"],
        "current_intentions": "Seeking connections with people on similar growth paths",
        "connection_goals": "Supportive conversations about personal growth",
    },
    {
        "id": "seed-4",
        "display_name": "Anna Wiśniewska",
        "avatar_url": "https://images.unsplash.com/photo-1438761681033-6461ffad8d80?w=150&h=150&fit=crop&crop=face",
        "bio": "Career development specialist from Gdansk",
        "mood": "Hopeful",
        "interests": ["Career Development", "Leadership", "Professional Growth", "Mentoring"],
        "current_intentions": "Connecting with professionals in transition periods",
        "connection_goals": "Mentoring exchanges and career guidance",
    },
    {
        "id": "seed-5",
        "display_name": "Michał Zieliński",
        "avatar_url": "https://images.unsplash.com/photo-1500648767791-00dcc994a43e?w=200&h=200&fit=crop&crop=face",
        "bio": "Philosopher and psychologist from Wroclaw",
        "mood": "Reflective",
        "interests": ["Philosophy", "Psychology", "Deep Conversations", "Asian Literature"],
        "current_intentions": "Exploring life's big questions through conversations",
        "connection_goals": "Intellectual exchanges and philosophical discussions",
    },
)


def seed_profiles(now: datetime | None = None) -> list[Profile]:
    """Fresh copies of the demo profiles, all marked active at ``now``."""
    now = now or datetime.now(timezone.utc)
    return [Profile.from_dict({**row, "updated_at": now}) for row in _SEED_ROWS]
