"""
In-memory collection store.

Collections hold pydantic documents in source (insertion) order. Writes go
through a per-collection lock so that id allocation and append are atomic
when FastAPI runs sync handlers on its thread pool.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

from pydantic import BaseModel

from schemas import Category, CategoryStats, Player, Quest

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
Predicate = Callable[[Any], bool]


class Collection(Generic[T]):
    def __init__(self, name: str, key: str, docs: Iterable[T] = ()):
        self.name = name
        self.key = key
        self._docs: Dict[Any, T] = {}
        self.lock = threading.RLock()
        for doc in docs:
            self.insert(doc)

    def __len__(self) -> int:
        return len(self._docs)

    def __iter__(self) -> Iterator[T]:
        return iter(self.all())

    def __contains__(self, key: Any) -> bool:
        return key in self._docs

    def keys(self) -> List[Any]:
        return list(self._docs)

    def get(self, key: Any) -> Optional[T]:
        return self._docs.get(key)

    def all(self) -> List[T]:
        with self.lock:
            return list(self._docs.values())

    def find(self, predicates: Iterable[Predicate] = ()) -> List[T]:
        predicates = list(predicates)
        return [doc for doc in self.all() if all(p(doc) for p in predicates)]

    def next_id(self) -> int:
        with self.lock:
            return max(self._docs, default=0) + 1

    def insert(self, doc: T) -> T:
        with self.lock:
            key = getattr(doc, self.key)
            if key in self._docs:
                raise ValueError(f"duplicate {self.name} key: {key!r}")
            self._docs[key] = doc
            return doc

    def insert_new(self, build: Callable[[int], T]) -> T:
        """Allocate ``max id + 1`` and insert ``build(new_id)`` under one lock."""
        with self.lock:
            return self.insert(build(self.next_id()))

    def update(self, key: Any, changes: Dict[str, Any]) -> T:
        with self.lock:
            doc = self._docs[key]
            for field, value in changes.items():
                setattr(doc, field, value)
            return doc


class Store:
    def __init__(
        self,
        quests: Iterable[Quest] = (),
        players: Iterable[Player] = (),
        categories: Iterable[Category] = (),
        category_stats: Iterable[CategoryStats] = (),
    ):
        self._collections: Dict[str, Collection] = {
            "quest": Collection("quest", "id", quests),
            "player": Collection("player", "username", players),
            "category": Collection("category", "id", categories),
            "category_stats": Collection("category_stats", "category_id", category_stats),
        }

    def __getitem__(self, name: str) -> Collection:
        return self._collections[name]

    def list_collection_names(self) -> List[str]:
        return list(self._collections)


# Seed data

SEED_QUESTS = [
    {
        "id": 1, "title": "Complete Morning Workout",
        "description": "Do 30 minutes of exercise to start the day strong",
        "status": "pending", "priority": "medium", "category": "health", "xp_reward": 50,
        "deadline": "2024-01-15T09:00:00Z", "estimated_time": 30, "created_at": "2024-01-14T06:00:00Z",
        "tags": ["exercise", "health", "morning"], "difficulty": "easy",
    },
    {
        "id": 2, "title": "Finish Project Report",
        "description": "Write the final report for the quarterly project review",
        "status": "in_progress", "priority": "high", "category": "work", "xp_reward": 100,
        "deadline": "2024-01-16T17:00:00Z", "estimated_time": 120, "created_at": "2024-01-10T09:00:00Z",
        "tags": ["work", "report", "deadline"], "difficulty": "medium",
    },
    {
        "id": 3, "title": "Learn New Recipe",
        "description": "Try cooking a new dish from the cookbook",
        "status": "completed", "priority": "low", "category": "personal", "xp_reward": 25,
        "deadline": "2024-01-14T19:00:00Z", "estimated_time": 60, "created_at": "2024-01-13T10:00:00Z",
        "completed_at": "2024-01-14T18:30:00Z",
        "tags": ["cooking", "learning", "personal"], "difficulty": "easy",
    },
    {
        "id": 4, "title": "Call Mom",
        "description": "Weekly check-in call with family",
        "status": "pending", "priority": "medium", "category": "personal", "xp_reward": 30,
        "deadline": "2024-01-17T20:00:00Z", "estimated_time": 20, "created_at": "2024-01-14T08:00:00Z",
        "tags": ["family", "communication"], "difficulty": "easy",
    },
    {
        "id": 5, "title": "Debug Login Issue",
        "description": "Fix the authentication bug reported by users",
        "status": "pending", "priority": "critical", "category": "work", "xp_reward": 150,
        "deadline": "2024-01-15T12:00:00Z", "estimated_time": 90, "created_at": "2024-01-14T14:00:00Z",
        "tags": ["bug", "authentication", "urgent"], "difficulty": "hard",
    },
    {
        "id": 6, "title": "Read Chapter 3",
        "description": "Complete reading assignment for JavaScript course",
        "status": "pending", "priority": "medium", "category": "learning", "xp_reward": 40,
        "deadline": "2024-01-18T23:59:00Z", "estimated_time": 45, "created_at": "2024-01-15T09:00:00Z",
        "tags": ["reading", "javascript", "course"], "difficulty": "easy",
    },
]

SEED_PLAYERS = [
    {
        "username": "alex", "display_name": "Alex Chen", "email": "alex.chen@example.com",
        "level": 15, "total_xp": 2450, "xp_to_next_level": 550, "current_streak": 7, "longest_streak": 21,
        "join_date": "2024-01-01T00:00:00Z", "last_active": "2024-01-14T18:30:00Z",
        "active_quests": [1, 2, 4, 5], "completed_quests": [3],
        "achievements": ["First Week", "Early Bird", "Streak Master"],
        "preferences": {"categories": ["work", "health"], "difficulty": "medium", "notifications": True, "theme": "dark"},
        "stats": {"total_quests_started": 12, "completion_rate": 75, "average_completion_time": 45,
                  "favorite_category": "work"},
    },
    {
        "username": "jordan", "display_name": "Jordan Smith", "email": "jordan.smith@example.com",
        "level": 8, "total_xp": 890, "xp_to_next_level": 110, "current_streak": 3, "longest_streak": 12,
        "join_date": "2024-01-05T00:00:00Z", "last_active": "2024-01-14T16:45:00Z",
        "active_quests": [2, 4], "completed_quests": [],
        "achievements": ["Getting Started"],
        "preferences": {"categories": ["personal", "learning"], "difficulty": "easy", "notifications": False,
                        "theme": "light"},
        "stats": {"total_quests_started": 6, "completion_rate": 50, "average_completion_time": 60,
                  "favorite_category": "personal"},
    },
    {
        "username": "sam", "display_name": "Sam Taylor", "email": "sam.taylor@example.com",
        "level": 22, "total_xp": 4200, "xp_to_next_level": 800, "current_streak": 14, "longest_streak": 35,
        "join_date": "2023-12-15T00:00:00Z", "last_active": "2024-01-14T20:15:00Z",
        "active_quests": [1, 5], "completed_quests": [3],
        "achievements": ["First Week", "Early Bird", "Streak Master", "Veteran", "XP Hunter"],
        "preferences": {"categories": ["work", "health", "personal"], "difficulty": "hard", "notifications": True,
                        "theme": "auto"},
        "stats": {"total_quests_started": 25, "completion_rate": 88, "average_completion_time": 35,
                  "favorite_category": "work"},
    },
    {
        # join_date and last_active are stamped at seed time
        "username": "demo", "display_name": "Demo User", "email": "demo@questtracker.com",
        "level": 1, "total_xp": 0, "xp_to_next_level": 100, "current_streak": 0, "longest_streak": 0,
        "active_quests": [1], "completed_quests": [],
        "achievements": [],
        "preferences": {"categories": ["personal"], "difficulty": "easy", "notifications": True, "theme": "light"},
        "stats": {"total_quests_started": 1, "completion_rate": 0, "average_completion_time": 0,
                  "favorite_category": "personal"},
    },
]

SEED_CATEGORIES = [
    {
        "id": "work", "name": "Work & Career",
        "description": "Professional development and work-related tasks",
        "color": "#3B82F6", "icon": "💼", "emoji": "💼", "default_xp_multiplier": 1.2,
        "common_priorities": ["high", "critical"], "suggested_time_blocks": [30, 60, 120],
        "popular_tags": ["meetings", "projects", "deadlines", "learning"],
        "difficulty_distribution": {"easy": 20, "medium": 50, "hard": 30},
        "tips": [
            "Break large projects into smaller, manageable tasks",
            "Set realistic deadlines to avoid burnout",
            "Use high-priority for urgent work items",
        ],
    },
    {
        "id": "health", "name": "Health & Fitness",
        "description": "Physical and mental wellness activities",
        "color": "#10B981", "icon": "🏃", "emoji": "🏃‍♂️", "default_xp_multiplier": 1.1,
        "common_priorities": ["medium", "high"], "suggested_time_blocks": [20, 30, 45, 60],
        "popular_tags": ["exercise", "meditation", "nutrition", "sleep"],
        "difficulty_distribution": {"easy": 40, "medium": 40, "hard": 20},
        "tips": [
            "Start with small, achievable goals",
            "Consistency is more important than intensity",
            "Track your progress to stay motivated",
        ],
    },
    {
        "id": "personal", "name": "Personal Life",
        "description": "Family, friends, hobbies, and personal growth",
        "color": "#8B5CF6", "icon": "🌟", "emoji": "🌟", "default_xp_multiplier": 1.0,
        "common_priorities": ["low", "medium"], "suggested_time_blocks": [15, 30, 60],
        "popular_tags": ["family", "friends", "hobbies", "self-care"],
        "difficulty_distribution": {"easy": 60, "medium": 30, "hard": 10},
        "tips": [
            "Schedule personal time just like work meetings",
            "Small gestures often have the biggest impact",
            "Remember to celebrate personal achievements",
        ],
    },
    {
        "id": "learning", "name": "Learning & Skills",
        "description": "Education, skill development, and knowledge acquisition",
        "color": "#F59E0B", "icon": "📚", "emoji": "📚", "default_xp_multiplier": 1.3,
        "common_priorities": ["medium", "high"], "suggested_time_blocks": [45, 60, 90],
        "popular_tags": ["courses", "reading", "practice", "research"],
        "difficulty_distribution": {"easy": 30, "medium": 50, "hard": 20},
        "tips": [
            "Set specific learning goals for each session",
            "Apply what you learn through practice projects",
            "Join communities related to your learning topics",
        ],
    },
    {
        "id": "creative", "name": "Creative Projects",
        "description": "Art, writing, music, and other creative endeavors",
        "color": "#EF4444", "icon": "🎨", "emoji": "🎨", "default_xp_multiplier": 1.1,
        "common_priorities": ["low", "medium"], "suggested_time_blocks": [30, 60, 120],
        "popular_tags": ["art", "writing", "music", "design"],
        "difficulty_distribution": {"easy": 35, "medium": 45, "hard": 20},
        "tips": [
            "Embrace the creative process, not just the outcome",
            "Set aside regular time for creative exploration",
            "Share your work to get feedback and motivation",
        ],
    },
    {
        "id": "finance", "name": "Finance & Money",
        "description": "Budgeting, investing, and financial planning",
        "color": "#059669", "icon": "💰", "emoji": "💰", "default_xp_multiplier": 1.2,
        "common_priorities": ["medium", "high"], "suggested_time_blocks": [30, 45, 60],
        "popular_tags": ["budgeting", "investing", "savings", "planning"],
        "difficulty_distribution": {"easy": 25, "medium": 55, "hard": 20},
        "tips": [
            "Start with small, consistent financial habits",
            "Automate savings and investments when possible",
            "Review and adjust your financial goals regularly",
        ],
    },
]

SEED_CATEGORY_STATS = [
    {"category_id": "work", "total_quests": 12, "completed": 8, "avg_completion_time": 65, "active_users": 45},
    {"category_id": "health", "total_quests": 18, "completed": 14, "avg_completion_time": 35, "active_users": 38},
    {"category_id": "personal", "total_quests": 15, "completed": 12, "avg_completion_time": 40, "active_users": 42},
    {"category_id": "learning", "total_quests": 20, "completed": 15, "avg_completion_time": 75, "active_users": 35},
    {"category_id": "creative", "total_quests": 10, "completed": 7, "avg_completion_time": 85, "active_users": 25},
    {"category_id": "finance", "total_quests": 8, "completed": 5, "avg_completion_time": 50, "active_users": 20},
]

# category id -> sample quest templates (title, minutes, difficulty)
QUEST_TEMPLATES = {
    "work": [
        ("Review project documentation", 30, "easy"),
        ("Attend team standup meeting", 15, "easy"),
        ("Complete code review", 45, "medium"),
    ],
    "health": [
        ("20-minute morning walk", 20, "easy"),
        ("Prepare healthy lunch", 30, "easy"),
        ("45-minute workout session", 45, "medium"),
    ],
    "personal": [
        ("Call a family member", 15, "easy"),
        ("Organize desk workspace", 30, "easy"),
        ("Plan weekend activities", 20, "easy"),
    ],
    "learning": [
        ("Read one chapter of programming book", 60, "medium"),
        ("Complete online course module", 45, "medium"),
        ("Practice coding exercises", 30, "easy"),
    ],
    "creative": [
        ("Write in journal for 15 minutes", 15, "easy"),
        ("Sketch or draw for 30 minutes", 30, "easy"),
        ("Work on creative project", 60, "medium"),
    ],
    "finance": [
        ("Review monthly budget", 30, "easy"),
        ("Research investment options", 45, "medium"),
        ("Update expense tracking", 20, "easy"),
    ],
}

GETTING_STARTED_GUIDES = {
    "work": (
        "Start by listing your current work priorities",
        "Break large projects into smaller, manageable tasks",
        "Set realistic deadlines and track your progress",
    ),
    "health": (
        "Choose one small health habit to focus on",
        "Schedule it at a consistent time each day",
        "Track your progress and celebrate small wins",
    ),
    "personal": (
        "Identify what personal areas need attention",
        "Start with quick, easy wins to build momentum",
        "Schedule personal time like any other important appointment",
    ),
    "learning": (
        "Choose a specific skill or topic to focus on",
        "Set aside dedicated learning time each day",
        "Apply what you learn through practice or projects",
    ),
    "creative": (
        "Set aside regular time for creative exploration",
        "Start with small, low-pressure creative exercises",
        "Share your work to get feedback and stay motivated",
    ),
    "finance": (
        "Start by tracking your current spending for one week",
        "Set one specific financial goal to work towards",
        "Automate one financial habit (savings, bill payment, etc.)",
    ),
}

DEFAULT_GUIDE = (
    "Identify what you want to achieve in this category",
    "Start with small, achievable goals",
    "Track your progress and adjust as needed",
)


def seed_store(now: Optional[datetime] = None) -> Store:
    now = now or datetime.now(timezone.utc)
    stamp = now.isoformat()

    players = []
    for raw in SEED_PLAYERS:
        doc = {"join_date": stamp, "last_active": stamp, **raw}
        players.append(Player.model_validate(doc))

    store = Store(
        quests=[Quest.model_validate(q) for q in SEED_QUESTS],
        players=players,
        categories=[Category.model_validate(c) for c in SEED_CATEGORIES],
        category_stats=[CategoryStats.model_validate(s) for s in SEED_CATEGORY_STATS],
    )
    logger.info(
        "Seeded store: %d quests, %d players, %d categories",
        len(store["quest"]), len(store["player"]), len(store["category"]),
    )
    return store
