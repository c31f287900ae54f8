"""Static catalog of spicy surprises and their unlock rules."""

from typing import List, Optional

from spicereads.models.gamification import SpicySurprise, UnlockRequirements

SPICY_SURPRISES: List[SpicySurprise] = [
    SpicySurprise(
        id="flirty_encouragement",
        title="Flirty Encouragement",
        description="A special voice message just for you",
        content_type="voice_clip",
        content_data={
            "voice_id": "flirty_voice",
            "text": "Look at you, keeping up that streak! You're absolutely irresistible when you're dedicated.",
            "duration": 8,
        },
        unlock_requirements=UnlockRequirements(streak_days=1, activity_points=50),
        rarity="common",
        is_nsfw=False,
    ),
    SpicySurprise(
        id="spicy_book_rec",
        title="Personalized Spicy Recommendation",
        description="A book recommendation based on your reading history",
        content_type="nsfw_recommendation",
        content_data={
            "genre_preferences": ["dark_romance", "enemies_to_lovers"],
            "spice_level": 4,
            "personalized": True,
        },
        unlock_requirements=UnlockRequirements(streak_days=2, activity_points=100),
        rarity="common",
        is_nsfw=True,
    ),
    SpicySurprise(
        id="exclusive_scene_preview",
        title="Exclusive Scene Preview",
        description="Get early access to a steamy scene from an upcoming release",
        content_type="exclusive_scene",
        content_data={
            "book_title": "Forbidden Desires: The Alpha's Claim",
            "scene_type": "first_encounter",
            "word_count": 1500,
            "spice_rating": 5,
        },
        unlock_requirements=UnlockRequirements(streak_days=5, activity_points=300),
        rarity="rare",
        is_nsfw=True,
    ),
    SpicySurprise(
        id="feral_friday_special",
        title="Feral Friday Special Voice",
        description="Unlock exclusive Feral Friday voice content",
        content_type="voice_clip",
        content_data={
            "voice_id": "dominant_voice",
            "text": "It's Feral Friday and you've earned something special. You've been such a good reader this week...",
            "duration": 15,
            "themed_day": "feral_friday",
        },
        unlock_requirements=UnlockRequirements(streak_days=5, activity_points=250, themed_day="feral_friday"),
        rarity="rare",
        is_nsfw=True,
    ),
    SpicySurprise(
        id="private_book_club",
        title="VIP Book Club Access",
        description="Join an exclusive 18+ book club discussion",
        content_type="club_conversation",
        content_data={
            "club_name": "The Spice Cabinet",
            "topic": "Analyzing the Psychology of Alpha Heroes",
            "member_limit": 20,
            "duration_days": 7,
        },
        unlock_requirements=UnlockRequirements(streak_days=10, activity_points=600),
        rarity="epic",
        is_nsfw=True,
    ),
    SpicySurprise(
        id="author_voice_message",
        title="Personal Message from Your Favorite Author",
        description="A personalized voice message from a popular romance author",
        content_type="voice_clip",
        content_data={
            "author_name": "Sarah J. Maas",
            "message_type": "congratulations",
            "duration": 20,
            "personalized": True,
        },
        unlock_requirements=UnlockRequirements(streak_days=12, activity_points=800),
        rarity="epic",
        is_nsfw=False,
    ),
    SpicySurprise(
        id="custom_voice_assistant",
        title="Custom Voice Assistant Personality",
        description="Unlock a completely new voice personality with exclusive content",
        content_type="voice_clip",
        content_data={
            "personality_name": "The Seductress",
            "voice_count": 50,
            "exclusive_phrases": True,
            "customizable": True,
        },
        unlock_requirements=UnlockRequirements(streak_days=21, activity_points=1500),
        rarity="legendary",
        is_nsfw=True,
    ),
    SpicySurprise(
        id="early_access_book",
        title="Early Access to Upcoming Release",
        description="Read a highly anticipated book 2 weeks before public release",
        content_type="nsfw_recommendation",
        content_data={
            "book_title": "Claimed by the Dragon King",
            "author": "Ruby Dixon",
            "early_access_days": 14,
            "exclusive": True,
        },
        unlock_requirements=UnlockRequirements(streak_days=30, activity_points=2000),
        rarity="legendary",
        is_nsfw=True,
    ),
    SpicySurprise(
        id="sinful_sunday_confession",
        title="Sinful Sunday Confession",
        description="Share your deepest reading desires in a private confession booth",
        content_type="club_conversation",
        content_data={
            "confession_type": "anonymous",
            "theme": "guilty_pleasures",
            "responses_enabled": True,
        },
        unlock_requirements=UnlockRequirements(streak_days=7, activity_points=400, themed_day="sinful_sunday"),
        rarity="rare",
        is_nsfw=True,
    ),
    SpicySurprise(
        id="wild_wednesday_fantasy",
        title="Wild Wednesday Fantasy Generator",
        description="AI-generated personalized fantasy scenarios based on your preferences",
        content_type="exclusive_scene",
        content_data={
            "generator_type": "ai_fantasy",
            "personalization_level": "high",
            "scenario_count": 5,
        },
        unlock_requirements=UnlockRequirements(streak_days=14, activity_points=700, themed_day="wild_wednesday"),
        rarity="epic",
        is_nsfw=True,
    ),
]


def is_eligible(surprise: SpicySurprise, *, streak_days: int, activity_points: int, theme_id: Optional[str]) -> bool:
    rules = surprise.unlock_requirements
    if streak_days < rules.streak_days or activity_points < rules.activity_points:
        return False
    return rules.themed_day is None or rules.themed_day == theme_id


def available_surprises(
    streak_days: int,
    activity_points: int,
    theme_id: Optional[str] = None,
    catalog: Optional[List[SpicySurprise]] = None,
) -> List[SpicySurprise]:
    """Catalog entries whose unlock rules are met, in catalog order."""
    entries = SPICY_SURPRISES if catalog is None else catalog
    return [
        surprise
        for surprise in entries
        if is_eligible(surprise, streak_days=streak_days, activity_points=activity_points, theme_id=theme_id)
    ]


def surprise_by_id(surprise_id: str, catalog: Optional[List[SpicySurprise]] = None) -> Optional[SpicySurprise]:
    entries = SPICY_SURPRISES if catalog is None else catalog
    return next((s for s in entries if s.id == surprise_id), None)
