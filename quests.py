import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request

from database import Store
from deps import api_info, get_db, get_now
from errors import AlreadyCompleted, InvalidArgument, NotFound, ValidationFailed
from formulas import (
    PRIORITY_RANK,
    completion_reward,
    days_until,
    difficulty_info,
    is_overdue,
    is_urgent,
    xp_for_priority,
)
from pipeline import (
    apply_filters,
    leading_int,
    paginate,
    parse_choice,
    parse_limit,
    parse_sort,
    parse_timestamp,
    sort_records,
    split_csv,
)
from schemas import CREATABLE_CATEGORIES, DIFFICULTIES, PRIORITIES, Quest, QuestCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quests", tags=["quests"])

MAX_PAGE_SIZE = 50
DEFAULT_ESTIMATED_TIME = 30
# quests without a deadline sort as if due far in the future
NO_DEADLINE = datetime(2099, 12, 31, tzinfo=timezone.utc)

SORT_KEYS = {
    "created_at": lambda q: q.created_at,
    "priority": lambda q: PRIORITY_RANK.get(q.priority, 0),
    "deadline": lambda q: q.deadline or NO_DEADLINE,
    "xp_reward": lambda q: q.xp_reward,
    "title": lambda q: q.title.casefold(),
}


# Query

@dataclass(frozen=True)
class QuestQuery:
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    difficulty: Optional[str] = None
    created_after: Optional[datetime] = None
    deadline_before: Optional[datetime] = None

    def predicates(self):
        preds = []
        if self.status:
            preds.append(lambda q: q.status.lower() == self.status.lower())
        if self.priority:
            preds.append(lambda q: q.priority.lower() == self.priority.lower())
        if self.category:
            preds.append(lambda q: q.category.lower() == self.category.lower())
        if self.tags:
            wanted = set(self.tags)
            preds.append(lambda q: any(tag.lower() in wanted for tag in q.tags))
        if self.difficulty:
            preds.append(lambda q: q.difficulty == self.difficulty)
        if self.created_after:
            preds.append(lambda q: q.created_at >= self.created_after)
        if self.deadline_before:
            preds.append(lambda q: q.deadline is not None and q.deadline <= self.deadline_before)
        return preds

    def applied(self, raw: Dict[str, Optional[str]]) -> Dict[str, Optional[str]]:
        return {name: raw.get(name) or None for name in self.__dataclass_fields__}


def quest_query(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma separated; matches any"),
    difficulty: Optional[str] = None,
    created_after: Optional[str] = None,
    deadline_before: Optional[str] = None,
) -> QuestQuery:
    return QuestQuery(
        status=status or None,
        priority=priority or None,
        category=category or None,
        tags=split_csv(tags) if tags else None,
        difficulty=parse_choice(difficulty, DIFFICULTIES, "difficulty") if difficulty else None,
        created_after=parse_timestamp(created_after, "created_after") if created_after else None,
        deadline_before=parse_timestamp(deadline_before, "deadline_before") if deadline_before else None,
    )


# Enrichment

def enrich_quest(quest: Quest, now: datetime) -> Dict[str, Any]:
    data = quest.model_dump(mode="json", exclude_none=True)
    data["days_until_deadline"] = days_until(quest.deadline, now) if quest.deadline else None
    data["is_urgent"] = is_urgent(quest.deadline, quest.status, now)
    data["is_overdue"] = is_overdue(quest.deadline, quest.status, now)
    data["difficulty_info"] = difficulty_info(quest.difficulty)
    return data


def quest_summary(quest: Quest, now: datetime) -> Dict[str, Any]:
    enriched = enrich_quest(quest, now)
    fields = ("id", "title", "status", "priority", "category", "xp_reward", "deadline",
              "days_until_deadline", "is_urgent", "is_overdue", "difficulty", "difficulty_info", "tags")
    summary = {name: enriched.get(name) for name in fields}
    summary["endpoint"] = f"/api/quests/{quest.id}"
    return summary


# Operations

def parse_quest_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise InvalidArgument("Quest ID must be a number", error="Invalid quest ID", provided=raw) from None


def _not_found(db: Store, quest_id: Any) -> NotFound:
    return NotFound(
        f"Quest with ID {quest_id} not found",
        error="Quest not found",
        available_quests=[{"id": q.id, "title": q.title} for q in db["quest"]],
        suggestion="Check the quest ID or browse all quests at /api/quests",
    )


def get_quest(db: Store, quest_id: int) -> Quest:
    quest = db["quest"].get(quest_id)
    if quest is None:
        raise _not_found(db, quest_id)
    return quest


def summarize_quests(quests: List[Quest], now: datetime) -> Dict[str, int]:
    return {
        "total_quests": len(quests),
        "total_xp_available": sum(q.xp_reward for q in quests),
        "completed_count": sum(1 for q in quests if q.status == "completed"),
        "urgent_count": sum(1 for q in quests if is_urgent(q.deadline, q.status, now)),
    }


def complete_quest(db: Store, quest_id: int, now: datetime) -> Tuple[Quest, Dict[str, Any]]:
    quests = db["quest"]
    with quests.lock:
        quest = get_quest(db, quest_id)
        if quest.status == "completed":
            raise AlreadyCompleted(
                f'Quest "{quest.title}" was already completed on {quest.completed_at.isoformat()}',
                quest_id=quest.id,
            )
        rewards = completion_reward(quest.xp_reward, quest.difficulty, quest.deadline, now)
        quests.update(quest.id, {"status": "completed", "completed_at": now})

    logger.info("Quest %s completed for %s XP", quest.id, rewards["total_xp_earned"])
    return quest, rewards


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def validate_new_quest(payload: QuestCreate) -> List[str]:
    """Return every rule the payload violates; empty when it is valid."""
    errors = []
    if not _is_text(payload.title):
        errors.append("title is required and must be a non-empty string")
    if not _is_text(payload.category) or payload.category.lower() not in CREATABLE_CATEGORIES:
        errors.append(f"category is required and must be one of: {', '.join(CREATABLE_CATEGORIES)}")
    if not _is_text(payload.priority) or payload.priority.lower() not in PRIORITIES:
        errors.append(f"priority is required and must be one of: {', '.join(PRIORITIES)}")
    if payload.description is not None and not isinstance(payload.description, str):
        errors.append("description must be a string")
    if payload.deadline:
        try:
            parse_timestamp(str(payload.deadline), "deadline")
        except InvalidArgument:
            errors.append("deadline must be a valid ISO date string (e.g., 2024-01-20T17:00:00Z)")
    if payload.difficulty and (not isinstance(payload.difficulty, str)
                               or payload.difficulty.lower() not in DIFFICULTIES):
        errors.append(f"difficulty must be one of: {', '.join(DIFFICULTIES)}")
    return errors


def _estimated_minutes(value: Any) -> int:
    return leading_int(value) or DEFAULT_ESTIMATED_TIME


def _tags(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(tag) for tag in value]
    if value:
        return [str(value)]
    return []


def create_quest(db: Store, payload: QuestCreate, now: datetime) -> Quest:
    errors = validate_new_quest(payload)
    if errors:
        raise ValidationFailed(
            errors,
            required_fields=["title", "category", "priority"],
            optional_fields=["description", "deadline", "tags", "estimated_time", "difficulty"],
        )

    priority = payload.priority.lower()
    deadline = parse_timestamp(str(payload.deadline), "deadline") if payload.deadline else None

    quest = db["quest"].insert_new(lambda new_id: Quest(
        id=new_id,
        title=payload.title.strip(),
        description=payload.description or "",
        status="pending",
        priority=priority,
        category=payload.category.lower(),
        xp_reward=xp_for_priority(priority),
        deadline=deadline,
        estimated_time=_estimated_minutes(payload.estimated_time),
        created_at=now,
        tags=_tags(payload.tags),
        difficulty=(payload.difficulty or "medium").lower(),
    ))
    logger.info("Quest %s created: %s (%s, %s)", quest.id, quest.title, quest.category, quest.priority)
    return quest


# Routes

@router.get("")
def list_quests(
    request: Request,
    query: QuestQuery = Depends(quest_query),
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    limit: Optional[str] = None,
    db: Store = Depends(get_db),
    now: datetime = Depends(get_now),
):
    sorting = parse_sort(sort_by, order, list(SORT_KEYS), default_order="desc")
    filtered = apply_filters(db["quest"].all(), query.predicates())
    ordered = sort_records(filtered, SORT_KEYS, sorting)
    page = paginate(ordered, parse_limit(limit, MAX_PAGE_SIZE, MAX_PAGE_SIZE))
    summary = summarize_quests(filtered, now)

    quests = [quest_summary(q, now) for q in page.items]
    return {
        **summary,
        "returned_quests": len(quests),
        "filters_applied": query.applied(dict(request.query_params)),
        "sorting": {"sort_by": sorting.key, "order": sorting.order},
        "quests": quests,
        "pagination": {"limit": page.limit, "has_more": page.has_more},
        "usage": "GET /api/quests/:id for detailed quest data",
    }


@router.get("/{quest_id}")
def read_quest(quest_id: str, request: Request, db: Store = Depends(get_db), now: datetime = Depends(get_now)):
    quest = get_quest(db, parse_quest_id(quest_id))
    data = enrich_quest(quest, now)
    data["api_info"] = api_info(
        request,
        data_source="Quest Tracker API v1.0",
        authenticated_with=request.state.api_key,
    )
    return data


@router.post("", status_code=201)
def add_quest(
    request: Request,
    payload: Optional[QuestCreate] = None,
    db: Store = Depends(get_db),
    now: datetime = Depends(get_now),
):
    # a missing body is judged like an empty one
    quest = create_quest(db, payload or QuestCreate(), now)
    return {
        "message": "Quest created successfully! ⚔️",
        "quest": enrich_quest(quest, now),
        "api_info": api_info(
            request,
            authenticated_with=request.state.api_key,
            total_quests=len(db["quest"]),
        ),
    }


@router.post("/{quest_id}/complete")
def finish_quest(quest_id: str, request: Request, db: Store = Depends(get_db), now: datetime = Depends(get_now)):
    quest, rewards = complete_quest(db, parse_quest_id(quest_id), now)
    return {
        "message": "Quest completed successfully! 🎉",
        "quest": enrich_quest(quest, now),
        "rewards": rewards,
        "api_info": api_info(request, authenticated_with=request.state.api_key),
    }
