from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Query
from pydantic import BaseModel, Field

from spicereads.features.gamification.service import (
    ActivityOutcome,
    GamificationService,
    get_gamification_service,
)
from spicereads.features.challenges.progress import is_completed, progress_percent

router = APIRouter()


class ActivityRequest(BaseModel):
    activity_type: str = Field(..., min_length=1)
    activity_data: Dict[str, Any] = Field(default_factory=dict)


class ShareAchievementRequest(BaseModel):
    achievement_type: str = Field(..., min_length=1)
    achievement_data: Dict[str, Any] = Field(default_factory=dict)


def current_user_id(x_user_id: str = Header(..., alias="X-User-Id", min_length=1)) -> str:
    return x_user_id


def _outcome_payload(outcome: ActivityOutcome) -> dict:
    return {
        "activity": outcome.activity.model_dump(mode="json"),
        "challenges": [_challenge_payload(c) for c in outcome.challenges],
        "stats": outcome.stats.model_dump(mode="json") if outcome.stats else None,
        "new_rewards": [r.model_dump(mode="json") for r in outcome.new_rewards],
        "errors": outcome.errors,
    }


def _challenge_payload(challenge) -> dict:
    payload = challenge.model_dump(mode="json")
    payload["progress_percent"] = round(progress_percent(challenge), 2)
    payload["is_completed"] = is_completed(challenge)
    return payload


@router.post("/v1/activities")
def record_activity(
    body: ActivityRequest,
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    """Record an activity; returns the activity plus refreshed challenges, stats and new rewards."""
    outcome = service.record_activity(user_id, body.activity_type, body.activity_data)
    return _outcome_payload(outcome)


@router.get("/v1/activities/recent")
def recent_activities(
    limit: Optional[int] = Query(None, ge=1, le=100),
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    activities = service.recent_activities(user_id, limit)
    return {"activities": [a.model_dump(mode="json") for a in activities]}


@router.post("/v1/achievements/share")
def share_achievement(
    body: ShareAchievementRequest,
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    outcome = service.share_achievement(user_id, body.achievement_type, body.achievement_data)
    return _outcome_payload(outcome)


@router.get("/v1/streaks")
def get_streaks(
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    return {"streaks": [s.model_dump(mode="json") for s in service.get_streaks(user_id)]}


@router.get("/v1/stats")
def get_stats(
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    result = service.get_stats(user_id)
    return {"stats": result.stats.model_dump(mode="json"), "error": result.error}


@router.get("/v1/themes/today")
def get_today_theme(service: GamificationService = Depends(get_gamification_service)):
    return service.today_theme().model_dump(mode="json")


@router.get("/v1/themes")
def list_themes(service: GamificationService = Depends(get_gamification_service)):
    return {"themes": [t.model_dump(mode="json") for t in service.themes()]}


@router.get("/v1/themes/{theme_id}")
def get_theme(theme_id: str, service: GamificationService = Depends(get_gamification_service)):
    return service.theme(theme_id).model_dump(mode="json")


@router.get("/v1/challenges/today")
def get_today_challenges(
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    return {"challenges": [_challenge_payload(c) for c in service.todays_challenges(user_id)]}


@router.post("/v1/rewards/check")
def check_rewards(
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    result = service.check_rewards(user_id)
    return {"unlocked": [s.model_dump(mode="json") for s in result.unlocked], "error": result.error}


@router.get("/v1/rewards")
def list_rewards(
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    return {"rewards": [r.model_dump(mode="json") for r in service.rewards(user_id)]}


@router.post("/v1/rewards/{reward_id}/claim")
def claim_reward(
    reward_id: str,
    user_id: str = Depends(current_user_id),
    service: GamificationService = Depends(get_gamification_service),
):
    return service.claim_reward(user_id, reward_id).model_dump(mode="json")


@router.get("/v1/leaderboard")
def get_leaderboard(
    timeframe: str = Query("weekly"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    service: GamificationService = Depends(get_gamification_service),
):
    entries = service.leaderboard(timeframe, limit)
    return {"timeframe": timeframe, "entries": [e.model_dump(mode="json") for e in entries]}
