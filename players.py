import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError

from database import Store
from deps import api_info, get_db, get_now
from errors import NotFound, ValidationFailed, validation_messages
from formulas import (
    activity_score,
    completion_rate,
    player_rank,
    round_half_up,
    streak_status,
    whole_days_since,
)
from pipeline import apply_filters, first_max, mean, paginate, parse_limit, parse_sort, sort_records
from schemas import Player, PreferencesUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/players", tags=["players"])

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
MAX_RECOMMENDATIONS = 3

# Leaderboard rows are dicts; keys map to the row field each sort uses
SORT_KEYS = {
    "level": lambda row: row["level"],
    "xp": lambda row: row["total_xp"],
    "streak": lambda row: row["current_streak"],
    "activity": lambda row: row["activity_score"],
    "completion_rate": lambda row: row["completion_rate"],
}

ACHIEVEMENTS = {
    # name: (description, rarity)
    "First Week": ("Completed your first week of quests", "Common"),
    "Early Bird": ("Completed 5 quests before their deadline", "Uncommon"),
    "Streak Master": ("Maintained a 7-day quest completion streak", "Rare"),
    "Getting Started": ("Completed your first quest", "Common"),
    "Veteran": ("Been active for over 30 days", "Rare"),
    "XP Hunter": ("Earned over 3000 XP points", "Epic"),
}


@dataclass(frozen=True)
class PlayerQuery:
    rank: Optional[str] = None

    def predicates(self):
        preds = []
        if self.rank:
            preds.append(lambda row: row["rank"].lower() == self.rank.lower())
        return preds


# Enrichment

def player_activity_score(player: Player, now: datetime) -> int:
    return activity_score(
        level=player.level,
        streak=player.current_streak,
        achievements=len(player.achievements),
        days_inactive=whole_days_since(player.last_active, now),
    )


def player_stats(player: Player, now: datetime) -> Dict[str, Any]:
    completed = len(player.completed_quests)
    active = len(player.active_quests)
    return {
        "total_quests_completed": completed,
        "active_quests_count": active,
        "total_quests": completed + active,
        "completion_rate": completion_rate(completed, active),
        "average_xp_per_quest": round_half_up(player.total_xp / completed) if completed else 0,
        "streak_status": streak_status(player.current_streak),
        "current_streak": player.current_streak,
        "longest_streak": player.longest_streak,
        "most_active_category": player.preferences.categories[0] if player.preferences.categories else "none",
        "total_estimated_time_minutes": player.stats.average_completion_time * completed,
        "rank": player_rank(player.level),
        "activity_score": player_activity_score(player, now),
    }


def achievement_details(player: Player) -> List[Dict[str, str]]:
    details = []
    for name in player.achievements:
        description, rarity = ACHIEVEMENTS.get(name, ("Special achievement unlocked", "Unknown"))
        details.append({"name": name, "description": description, "rarity": rarity})
    return details


def recommendations(player: Player, stats: Dict[str, Any]) -> List[Dict[str, str]]:
    recs = []
    if stats["completion_rate"] < 50:
        recs.append({
            "type": "improvement",
            "title": "Focus on Quest Completion",
            "description": "Try completing more of your active quests to improve your completion rate",
            "action": "Review your active quests and prioritize the easiest ones",
        })
    if player.current_streak < 3:
        recs.append({
            "type": "streak",
            "title": "Build Your Streak",
            "description": "Complete quests daily to build up your completion streak",
            "action": "Set small, achievable daily quests",
        })
    if len(player.preferences.categories) < 2:
        recs.append({
            "type": "variety",
            "title": "Explore New Categories",
            "description": "Try quests in different categories to earn more diverse XP",
            "action": "Browse the categories endpoint for new quest types",
        })
    if player.xp_to_next_level < 100:
        recs.append({
            "type": "level_up",
            "title": "Level Up Soon!",
            "description": f"You're only {player.xp_to_next_level} XP away from level {player.level + 1}",
            "action": "Complete a high-priority quest to level up quickly",
        })
    return recs[:MAX_RECOMMENDATIONS]


def leaderboard_row(player: Player, now: datetime) -> Dict[str, Any]:
    stats = player_stats(player, now)
    return {
        "username": player.username,
        "display_name": player.display_name,
        "level": player.level,
        "total_xp": player.total_xp,
        "current_streak": player.current_streak,
        "rank": stats["rank"],
        "completed_quests": stats["total_quests_completed"],
        "active_quests": stats["active_quests_count"],
        "completion_rate": stats["completion_rate"],
        "activity_score": stats["activity_score"],
        "last_active": player.model_dump(mode="json")["last_active"],
        "achievements_count": len(player.achievements),
        "endpoint": f"/api/players/{player.username}",
    }


def leaderboard_stats(rows: List[Dict[str, Any]], everyone: List[Player]) -> Dict[str, Any]:
    return {
        "total_players": len(rows),
        "average_level": round_half_up(mean([r["level"] for r in rows])),
        # XP total covers every player, not only the filtered rows
        "total_xp_earned": sum(p.total_xp for p in everyone),
        "average_completion_rate": round_half_up(mean([r["completion_rate"] for r in rows])),
        "most_active_player": first_max(rows, key=lambda r: r["activity_score"]),
    }


# Operations

def get_player(db: Store, username: str) -> Player:
    player = db["player"].get(username.lower())
    if player is None:
        available = db["player"].keys()
        raise NotFound(
            f"Player {username} not found",
            error="Player not found",
            available_players=available,
            suggestion=f"Check the username spelling or try: {', '.join(available)}",
        )
    return player


def parse_preferences(body: Optional[Dict[str, Any]]) -> PreferencesUpdate:
    try:
        return PreferencesUpdate.model_validate(body or {})
    except ValidationError as exc:
        raise ValidationFailed(validation_messages(exc.errors())) from None


def update_preferences(db: Store, username: str, body: Optional[Dict[str, Any]], now: datetime) -> Player:
    """Apply the fields present in ``body``; the player is looked up before the body is checked."""
    players = db["player"]
    with players.lock:
        player = get_player(db, username)
        changes = parse_preferences(body).changes()
        for field, value in changes.items():
            setattr(player.preferences, field, value)
        players.update(player.username, {"last_active": now})

    logger.info("Preferences updated for %s: %s", player.username, sorted(changes) or "no changes")
    return player


# Routes

@router.get("")
def list_players(
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    limit: Optional[str] = None,
    rank: Optional[str] = None,
    db: Store = Depends(get_db),
    now: datetime = Depends(get_now),
):
    sorting = parse_sort(sort_by, order, list(SORT_KEYS), default_order="desc")
    everyone = db["player"].all()
    rows = apply_filters([leaderboard_row(p, now) for p in everyone], PlayerQuery(rank=rank).predicates())
    rows = sort_records(rows, SORT_KEYS, sorting)
    for position, row in enumerate(rows, start=1):
        row["leaderboard_position"] = position

    page = paginate(rows, parse_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
    return {
        "leaderboard_stats": leaderboard_stats(rows, everyone),
        "sort_applied": {"by": sorting.key, "order": sorting.order},
        "filters_applied": {"rank": rank or None},
        "pagination": {"limit": page.limit, "returned": len(page.items), "has_more": page.has_more},
        "players": page.items,
        "usage": "GET /api/players/:username for detailed player data",
    }


@router.get("/{username}")
def read_player(
    username: str,
    request: Request,
    include_quests: Optional[str] = None,
    include_stats: Optional[str] = None,
    db: Store = Depends(get_db),
    now: datetime = Depends(get_now),
):
    player = get_player(db, username)
    with_quests = include_quests == "true"
    with_stats = include_stats != "false"

    data = player.model_dump(mode="json")
    stats = player_stats(player, now)
    if with_stats:
        data["calculated_stats"] = stats
    if with_quests:
        api_key = request.state.api_key

        def links(ids):
            return [
                {"id": qid, "endpoint": f"/api/quests/{qid}", "quick_access": f"/api/quests/{qid}?api_key={api_key}"}
                for qid in ids
            ]

        data["quest_details"] = {
            "active": links(player.active_quests),
            "completed": links(player.completed_quests),
        }
    data["achievement_details"] = achievement_details(player)
    data["recommendations"] = recommendations(player, stats)
    data["api_info"] = api_info(
        request,
        include_quests=with_quests,
        include_stats=with_stats,
        data_source="Quest Tracker API v1.0",
        authenticated_with=request.state.api_key,
    )
    return data


@router.put("/{username}/preferences")
def put_preferences(
    username: str,
    request: Request,
    body: Optional[Dict[str, Any]] = Body(None),
    db: Store = Depends(get_db),
    now: datetime = Depends(get_now),
):
    player = update_preferences(db, username, body, now)
    return {
        "message": "Preferences updated successfully",
        "player": {
            "username": player.username,
            "preferences": player.preferences.model_dump(),
            "last_active": player.model_dump(mode="json")["last_active"],
        },
        "api_info": api_info(request),
    }
