"""
Schemas for the Quest Tracker API

Each stored model maps to one in-memory collection named after the lowercase
class name (e.g. Quest -> "quest"). Request models sit at the bottom.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

QuestStatus = Literal['pending', 'in_progress', 'completed']
Priority = Literal['low', 'medium', 'high', 'critical']
Difficulty = Literal['easy', 'medium', 'hard']

STATUSES = ('pending', 'in_progress', 'completed')
PRIORITIES = ('low', 'medium', 'high', 'critical')
DIFFICULTIES = ('easy', 'medium', 'hard')

# Categories accepted by quest creation. "finance" is browsable but not creatable.
CREATABLE_CATEGORIES = ('work', 'health', 'personal', 'learning', 'creative')


class Quest(BaseModel):
    id: int = Field(..., ge=1)
    title: str = Field(..., min_length=1)
    description: str = ''
    status: QuestStatus = 'pending'
    priority: Priority = 'medium'
    category: str
    xp_reward: int = Field(50, ge=0)
    deadline: Optional[datetime] = None
    estimated_time: int = Field(30, description="Minutes")
    created_at: datetime
    completed_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    difficulty: Difficulty = 'medium'


class Preferences(BaseModel):
    categories: List[str] = Field(default_factory=list)
    difficulty: str = 'medium'
    notifications: bool = True
    theme: str = 'light'


class PlayerStatsSnapshot(BaseModel):
    total_quests_started: int = 0
    completion_rate: int = 0
    average_completion_time: int = Field(0, description="Minutes")
    favorite_category: str = 'none'


class Player(BaseModel):
    username: str = Field(..., description="Unique lowercase handle")
    display_name: str
    email: Optional[str] = None
    level: int = Field(1, ge=1)
    total_xp: int = Field(0, ge=0)
    xp_to_next_level: int = Field(100, ge=0)
    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    join_date: datetime
    last_active: datetime
    active_quests: List[int] = Field(default_factory=list)
    completed_quests: List[int] = Field(default_factory=list)
    achievements: List[str] = Field(default_factory=list, description="Append-only")
    preferences: Preferences = Field(default_factory=Preferences)
    stats: PlayerStatsSnapshot = Field(default_factory=PlayerStatsSnapshot)


class DifficultyDistribution(BaseModel):
    easy: int = 0
    medium: int = 0
    hard: int = 0


class Category(BaseModel):
    id: str = Field(..., description="Short code, e.g. 'work'")
    name: str
    description: str
    color: str
    icon: str
    emoji: str
    default_xp_multiplier: float = 1.0
    common_priorities: List[Priority] = Field(default_factory=list)
    suggested_time_blocks: List[int] = Field(default_factory=list)
    popular_tags: List[str] = Field(default_factory=list)
    difficulty_distribution: DifficultyDistribution = Field(default_factory=DifficultyDistribution)
    tips: List[str] = Field(default_factory=list)


class CategoryStats(BaseModel):
    """Frozen per-category snapshot; not recomputed from live quests."""
    category_id: str
    total_quests: int = 0
    completed: int = 0
    avg_completion_time: int = 0
    active_users: int = 0


# Request bodies

class QuestCreate(BaseModel):
    # Loosely typed so that every rule is checked together in quests.validate_new_quest
    title: Optional[Any] = None
    description: Optional[Any] = None
    priority: Optional[Any] = None
    category: Optional[Any] = None
    deadline: Optional[Any] = None
    tags: Optional[Any] = None
    estimated_time: Optional[Any] = None
    difficulty: Optional[Any] = None
    xp_reward: Optional[Any] = Field(None, description="Ignored; derived from priority")


class PreferencesUpdate(BaseModel):
    categories: Optional[List[str]] = None
    difficulty: Optional[str] = None
    notifications: Optional[bool] = None
    theme: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)
