"""
Derived-field formulas.

Pure functions of a record and ``now``; nothing here touches the store.
Rounding is half-up everywhere so published numbers stay stable (2.5 -> 3).
"""
import math
from datetime import datetime, timedelta
from typing import Dict, Optional

DAY = timedelta(days=1)

PRIORITY_RANK = {'low': 1, 'medium': 2, 'high': 3, 'critical': 4}
PRIORITY_XP = {'low': 25, 'medium': 50, 'high': 100, 'critical': 150}
DIFFICULTY_MULTIPLIER = {'easy': 1.0, 'medium': 1.2, 'hard': 1.5}
DIFFICULTY_ICON = {'easy': '🟢', 'medium': '🟡', 'hard': '🔴'}
EARLY_COMPLETION_BONUS = 0.10


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# Quests

def days_until(deadline: datetime, now: datetime) -> int:
    return math.ceil((deadline - now) / DAY)


def is_urgent(deadline: Optional[datetime], status: str, now: datetime) -> bool:
    if deadline is None or status == 'completed':
        return False
    return days_until(deadline, now) <= 1


def is_overdue(deadline: Optional[datetime], status: str, now: datetime) -> bool:
    if deadline is None or status == 'completed':
        return False
    return days_until(deadline, now) < 0


def difficulty_info(difficulty: str) -> Dict[str, object]:
    # unknown difficulties display as easy
    key = difficulty if difficulty in DIFFICULTY_MULTIPLIER else 'easy'
    return {'icon': DIFFICULTY_ICON[key], 'multiplier': DIFFICULTY_MULTIPLIER[key]}


def xp_for_priority(priority: str) -> int:
    return PRIORITY_XP.get(priority, PRIORITY_XP['medium'])


def completion_reward(base_xp: int, difficulty: str, deadline: Optional[datetime], now: datetime) -> Dict[str, object]:
    bonus = 0
    if deadline is not None and now <= deadline:
        bonus = round_half_up(base_xp * EARLY_COMPLETION_BONUS)
    multiplier = DIFFICULTY_MULTIPLIER.get(difficulty, 1.0)
    return {
        'base_xp': base_xp,
        'bonus_xp': bonus,
        'difficulty_multiplier': multiplier,
        'total_xp_earned': round_half_up((base_xp + bonus) * multiplier),
        'early_completion': bonus > 0,
    }


# Players

def player_rank(level: int) -> str:
    if level >= 20:
        return 'Master'
    elif level >= 15:
        return 'Expert'
    elif level >= 10:
        return 'Advanced'
    elif level >= 5:
        return 'Intermediate'
    return 'Beginner'


def completion_rate(completed: int, active: int) -> int:
    total = completed + active
    if total == 0:
        return 0
    return round_half_up(completed / total * 100)


def whole_days_since(moment: datetime, now: datetime) -> int:
    return math.floor((now - moment) / DAY)


def activity_score(level: int, streak: int, achievements: int, days_inactive: int) -> int:
    score = level * 10 + streak * 5 + achievements * 20
    if days_inactive > 7:
        score *= 0.5
    elif days_inactive > 3:
        score *= 0.8
    return round_half_up(score)


def streak_status(streak: int) -> str:
    if streak >= 7:
        return 'Hot Streak! 🔥'
    elif streak >= 3:
        return 'Good 👍'
    return 'Building'


# Categories

def trending_score(active_users: int, completed: int, total_quests: int) -> int:
    user_score = min(active_users / 50, 1) * 50
    completion_score = (completed / total_quests if total_quests > 0 else 0) * 30
    volume_score = min(total_quests / 20, 1) * 20
    return round_half_up(user_score + completion_score + volume_score)


def trending_label(active_users: int) -> str:
    if active_users > 30:
        return 'high'
    elif active_users > 20:
        return 'medium'
    return 'low'


def xp_for_minutes(minutes: int, multiplier: float) -> int:
    return round_half_up(minutes * multiplier)
