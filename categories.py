from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request

from database import DEFAULT_GUIDE, GETTING_STARTED_GUIDES, QUEST_TEMPLATES, Store
from deps import api_info, get_db
from errors import NotFound
from formulas import completion_rate, trending_label, trending_score, xp_for_minutes
from pipeline import apply_filters, first_max, leading_int, parse_sort, sort_records
from schemas import Category, CategoryStats

router = APIRouter(prefix="/api/categories", tags=["categories"])

USAGE_TIPS = [
    "Use include_stats=true to see quest statistics per category",
    "Search by category name, description, or tags",
    "Sort by popularity to see trending categories",
]
SUGGESTION_TIPS = [
    "Start with easier quests to build momentum",
    "Match quest difficulty to your current energy level",
    "Consider grouping similar quests together",
]


@dataclass(frozen=True)
class CategoryQuery:
    search: Optional[str] = None

    def predicates(self):
        if not self.search:
            return []
        term = self.search.lower()
        return [lambda c: (
            term in c.name.lower()
            or term in c.description.lower()
            or any(term in tag.lower() for tag in c.popular_tags)
        )]


def stats_for(db: Store, category_id: str) -> CategoryStats:
    return db["category_stats"].get(category_id) or CategoryStats(category_id=category_id)


def sort_keys(db: Store):
    return {
        "name": lambda c: c.name.casefold(),
        "popularity": lambda c: stats_for(db, c.id).active_users,
        "xp_multiplier": lambda c: c.default_xp_multiplier,
    }


# Enrichment

def recommended_for(category: Category) -> List[str]:
    audience = []
    if category.difficulty_distribution.easy >= 50:
        audience.append("Beginners")
    if category.default_xp_multiplier > 1.2:
        audience.append("XP Hunters")
    if category.suggested_time_blocks and category.suggested_time_blocks[0] <= 20:
        audience.append("Busy Schedules")
    if category.id in ("health", "personal"):
        audience.append("Work-Life Balance")
    if category.id in ("learning", "creative"):
        audience.append("Skill Development")
    return audience or ["Everyone"]


def summary_stats(category: Category, stats: CategoryStats) -> Dict[str, Any]:
    return {
        "total_quests_available": stats.total_quests,
        "total_completed": stats.completed,
        "completion_rate": completion_rate(stats.completed, stats.total_quests - stats.completed),
        "avg_completion_time_minutes": stats.avg_completion_time,
        "active_users": stats.active_users,
        "difficulty_level": "challenging" if category.default_xp_multiplier > 1.2 else "moderate",
        "trending": trending_label(stats.active_users),
    }


def detail_stats(category: Category, stats: CategoryStats) -> Dict[str, Any]:
    return {
        "total_quests_available": stats.total_quests,
        "total_completed": stats.completed,
        "completion_rate": completion_rate(stats.completed, stats.total_quests - stats.completed),
        "avg_completion_time_minutes": stats.avg_completion_time,
        "active_users": stats.active_users,
        "difficulty_breakdown": category.difficulty_distribution.model_dump(),
        "trending_score": trending_score(stats.active_users, stats.completed, stats.total_quests),
        "recommended_for": recommended_for(category),
    }


def sample_quests(category: Category) -> List[Dict[str, Any]]:
    return [
        {
            "id": f"sample_{category.id}_{index}",
            "title": title,
            "estimated_time": minutes,
            "difficulty": difficulty,
            "xp_reward": xp_for_minutes(minutes, category.default_xp_multiplier),
            "create_endpoint": "/api/quests",
            "note": "This is a sample quest - create similar ones via POST /api/quests",
        }
        for index, (title, minutes, difficulty) in enumerate(QUEST_TEMPLATES.get(category.id, []), start=1)
    ]


def getting_started(category: Category) -> Dict[str, str]:
    steps = GETTING_STARTED_GUIDES.get(category.id, DEFAULT_GUIDE)
    return {f"step{n}": step for n, step in enumerate(steps, start=1)}


def quest_suggestions(category: Category, difficulty: str, time_available: Optional[int]) -> List[Dict[str, Any]]:
    label = category.name.lower()
    templates = [
        (f"Review {label} goals", 20, "easy",
         f"Take time to review and adjust your {label} objectives"),
        (f"Complete a {label} task", 30, "medium",
         f"Work on an important task in the {label} category"),
        (f"Plan {label} activities", 15, "easy",
         f"Plan upcoming activities and priorities for {label}"),
    ]

    suggestions = []
    for index, (title, minutes, level, description) in enumerate(templates, start=1):
        if difficulty != "any" and level != difficulty:
            continue
        if time_available and minutes > time_available:
            continue
        suggestions.append({
            "id": f"suggestion_{category.id}_{index}",
            "title": title,
            "description": description,
            "estimated_time": minutes,
            "difficulty": level,
            "xp_reward": xp_for_minutes(minutes, category.default_xp_multiplier),
            "priority": "low" if level == "easy" else "medium",
            "tags": category.popular_tags[:2],
        })
    return suggestions


def category_insights(db: Store, categories: List[Category], rendered: List[Dict[str, Any]]) -> Dict[str, Any]:
    by_id = {item["id"]: item for item in rendered}
    most_popular = first_max(categories, key=lambda c: stats_for(db, c.id).active_users)
    highest_xp = first_max(categories, key=lambda c: c.default_xp_multiplier)
    return {
        "most_popular": by_id[most_popular.id] if most_popular else None,
        "highest_xp": by_id[highest_xp.id] if highest_xp else None,
        "best_for_beginners": [by_id[c.id] for c in categories if c.difficulty_distribution.easy >= 50],
        "quick_wins": [by_id[c.id] for c in categories
                       if c.suggested_time_blocks and c.suggested_time_blocks[0] <= 20],
    }


def get_category(db: Store, category_id: str, list_available: bool = True) -> Category:
    category = db["category"].get(category_id.lower())
    if category is None:
        extra = {}
        if list_available:
            extra = {
                "available_categories": [{"id": c.id, "name": c.name} for c in db["category"]],
                "suggestion": f"Try: {', '.join(db['category'].keys())}",
            }
        raise NotFound(f"Category with ID '{category_id}' not found", error="Category not found", **extra)
    return category


def _parse_minutes(raw: Optional[str]) -> Optional[int]:
    # "20min" reads as 20; zero or unparseable means no time limit
    return leading_int(raw) or None


# Routes

@router.get("")
def list_categories(
    request: Request,
    include_stats: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    db: Store = Depends(get_db),
):
    with_stats = include_stats == "true"
    search = search.lower() if search else None
    keys = sort_keys(db)
    sorting = parse_sort(sort_by, order, list(keys), default_order="asc")

    filtered = apply_filters(db["category"].all(), CategoryQuery(search=search).predicates())
    ordered = sort_records(filtered, keys, sorting)

    rendered = []
    for category in ordered:
        item = category.model_dump()
        if with_stats:
            item["stats"] = summary_stats(category, stats_for(db, category.id))
        rendered.append(item)

    return {
        "total_categories": len(rendered),
        "categories": rendered,
        "filters_applied": {
            "search": search,
            "include_stats": with_stats,
            "sort_by": sorting.key,
            "order": sorting.order,
        },
        "insights": category_insights(db, filtered, rendered) if with_stats else None,
        "usage_tips": USAGE_TIPS,
        "api_info": api_info(request),
    }


@router.get("/{category_id}")
def read_category(
    category_id: str,
    request: Request,
    include_quests: Optional[str] = None,
    include_tips: Optional[str] = None,
    db: Store = Depends(get_db),
):
    category = get_category(db, category_id)
    with_quests = include_quests == "true"
    with_tips = include_tips != "false"

    data = category.model_dump()
    data["stats"] = detail_stats(category, stats_for(db, category.id))
    data["related_endpoints"] = {
        "quests": f"/api/quests?category={category.id}",
        "pending_quests": f"/api/quests?category={category.id}&status=pending",
        "completed_quests": f"/api/quests?category={category.id}&status=completed",
        "high_priority": f"/api/quests?category={category.id}&priority=high",
    }
    if with_quests:
        data["sample_quests"] = sample_quests(category)
    if with_tips:
        data["actionable_tips"] = category.tips
        data["getting_started"] = getting_started(category)
    data["api_info"] = api_info(request, include_quests=with_quests, include_tips=with_tips)
    return data


@router.get("/{category_id}/suggestions")
def read_suggestions(
    category_id: str,
    request: Request,
    difficulty: Optional[str] = None,
    time_available: Optional[str] = None,
    db: Store = Depends(get_db),
):
    category = get_category(db, category_id, list_available=False)
    difficulty = difficulty or "any"
    minutes = _parse_minutes(time_available)
    suggestions = quest_suggestions(category, difficulty, minutes)
    return {
        "category": {"id": category.id, "name": category.name, "icon": category.icon},
        "filters": {"difficulty": difficulty, "time_available_minutes": minutes},
        "suggestions": suggestions,
        "total_suggestions": len(suggestions),
        "tips": SUGGESTION_TIPS,
        "api_info": api_info(request),
    }
