def test_list_quests_default_sort_and_summary(client) -> None:
    response = client.get("/api/quests")
    assert response.status_code == 200
    body = response.json()
    assert [q["id"] for q in body["quests"]] == [6, 5, 4, 1, 3, 2]
    assert body["total_quests"] == 6
    assert body["total_xp_available"] == 395
    assert body["completed_count"] == 1
    assert body["urgent_count"] == 2
    assert body["sorting"] == {"sort_by": "created_at", "order": "desc"}
    assert body["pagination"] == {"limit": 50, "has_more": False}


def test_list_quests_enriches_each_item(client) -> None:
    body = client.get("/api/quests", params={"sort_by": "created_at", "order": "asc"}).json()
    first = body["quests"][0]
    assert first["id"] == 2
    assert first["days_until_deadline"] == 3
    assert first["is_urgent"] is False
    assert first["difficulty_info"] == {"icon": "🟡", "multiplier": 1.2}
    assert first["endpoint"] == "/api/quests/2"


def test_filters_combine_with_and(client) -> None:
    body = client.get("/api/quests", params={"status": "PENDING", "priority": "medium"}).json()
    assert sorted(q["id"] for q in body["quests"]) == [1, 4, 6]
    assert body["filters_applied"]["status"] == "PENDING"
    assert body["filters_applied"]["tags"] is None


def test_tag_filter_matches_any_tag(client) -> None:
    body = client.get("/api/quests", params={"tags": "Urgent, cooking"}).json()
    assert sorted(q["id"] for q in body["quests"]) == [3, 5]


def test_date_range_filters(client) -> None:
    body = client.get("/api/quests", params={"created_after": "2024-01-14T00:00:00Z"}).json()
    assert sorted(q["id"] for q in body["quests"]) == [1, 4, 5, 6]

    body = client.get("/api/quests", params={"deadline_before": "2024-01-15T12:00:00Z"}).json()
    assert sorted(q["id"] for q in body["quests"]) == [1, 3, 5]


def test_invalid_difficulty_is_rejected(client) -> None:
    response = client.get("/api/quests", params={"difficulty": "extreme"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid difficulty value"
    assert body["valid_values"] == ["easy", "medium", "hard"]
    assert body["provided"] == "extreme"


def test_invalid_date_is_rejected(client) -> None:
    response = client.get("/api/quests", params={"created_after": "yesterday-ish"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid date format"


def test_limit_is_clamped(client) -> None:
    body = client.get("/api/quests", params={"limit": "2"}).json()
    assert len(body["quests"]) == 2
    assert body["returned_quests"] == 2
    assert body["total_quests"] == 6
    assert body["pagination"] == {"limit": 2, "has_more": True}

    body = client.get("/api/quests", params={"limit": "1000"}).json()
    assert body["pagination"]["limit"] == 50


def test_sort_by_priority_desc(client) -> None:
    body = client.get("/api/quests", params={"sort_by": "priority"}).json()
    assert [q["id"] for q in body["quests"]] == [5, 2, 1, 4, 6, 3]


def test_get_quest(client) -> None:
    response = client.get("/api/quests/1")
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Complete Morning Workout"
    assert body["days_until_deadline"] == 1
    assert body["is_urgent"] is True
    assert body["api_info"]["authenticated_with"] == "demo_key_12345"


def test_get_quest_bad_id_and_missing(client) -> None:
    response = client.get("/api/quests/abc")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid quest ID"

    response = client.get("/api/quests/99")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Quest not found"
    assert [q["id"] for q in body["available_quests"]] == [1, 2, 3, 4, 5, 6]


def test_complete_quest_awards_early_bonus(client, store, now) -> None:
    response = client.post("/api/quests/1/complete")
    assert response.status_code == 200
    body = response.json()
    assert body["rewards"] == {
        "base_xp": 50,
        "bonus_xp": 5,
        "difficulty_multiplier": 1.0,
        "total_xp_earned": 55,
        "early_completion": True,
    }
    assert body["quest"]["status"] == "completed"
    assert store["quest"].get(1).completed_at == now


def test_complete_quest_twice_conflicts(client, store) -> None:
    assert client.post("/api/quests/1/complete").status_code == 200
    completed_at = store["quest"].get(1).completed_at

    response = client.post("/api/quests/1/complete")
    assert response.status_code == 400
    assert response.json()["error"] == "Quest already completed"
    assert response.json()["quest_id"] == 1
    assert store["quest"].get(1).completed_at == completed_at


def test_complete_seeded_completed_quest_conflicts(client) -> None:
    response = client.post("/api/quests/3/complete")
    assert response.status_code == 400


def test_complete_unknown_or_bad_id(client) -> None:
    assert client.post("/api/quests/77/complete").status_code == 404
    assert client.post("/api/quests/x1/complete").status_code == 400


def test_create_quest_assigns_id_and_priority_xp(client, store) -> None:
    response = client.post("/api/quests", json={
        "title": "  Write tests  ",
        "category": "Learning",
        "priority": "HIGH",
        "xp_reward": 9999,
        "tags": "testing",
        "estimated_time": "not a number",
    })
    assert response.status_code == 201
    quest = response.json()["quest"]
    assert quest["id"] == 7
    assert quest["title"] == "Write tests"
    assert quest["category"] == "learning"
    assert quest["priority"] == "high"
    assert quest["xp_reward"] == 100
    assert quest["status"] == "pending"
    assert quest["difficulty"] == "medium"
    assert quest["estimated_time"] == 30
    assert quest["tags"] == ["testing"]
    assert quest["description"] == ""
    assert response.json()["api_info"]["total_quests"] == 7
    assert len(store["quest"]) == 7


def test_create_quest_with_deadline(client) -> None:
    response = client.post("/api/quests", json={
        "title": "Ship it",
        "category": "work",
        "priority": "critical",
        "deadline": "2024-01-20T17:00:00Z",
        "difficulty": "hard",
        "estimated_time": 45,
    })
    assert response.status_code == 201
    quest = response.json()["quest"]
    assert quest["deadline"] == "2024-01-20T17:00:00Z"
    assert quest["days_until_deadline"] == 7
    assert quest["estimated_time"] == 45


def test_create_quest_rejects_finance(client, store) -> None:
    response = client.post("/api/quests", json={"title": "Budget", "category": "finance", "priority": "low"})
    assert response.status_code == 400
    assert response.json()["validation_errors"] == [
        "category is required and must be one of: work, health, personal, learning, creative",
    ]
    assert len(store["quest"]) == 6


def test_create_quest_collects_all_errors(client, store) -> None:
    response = client.post("/api/quests", json={
        "title": "   ",
        "category": "space",
        "deadline": "soon",
        "difficulty": "extreme",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert len(body["validation_errors"]) == 5
    assert body["required_fields"] == ["title", "category", "priority"]
    assert len(store["quest"]) == 6


def test_create_quest_without_body_reports_required_fields(client, store) -> None:
    response = client.post("/api/quests")
    assert response.status_code == 400
    assert response.json()["validation_errors"] == [
        "title is required and must be a non-empty string",
        "category is required and must be one of: work, health, personal, learning, creative",
        "priority is required and must be one of: low, medium, high, critical",
    ]
    assert len(store["quest"]) == 6


def test_create_quest_bad_description_does_not_hide_other_errors(client, store) -> None:
    response = client.post("/api/quests", json={
        "title": "",
        "category": "space",
        "priority": "x",
        "description": 5,
    })
    assert response.status_code == 400
    errors = response.json()["validation_errors"]
    assert len(errors) == 4
    assert errors[0] == "title is required and must be a non-empty string"
    assert errors[3] == "description must be a string"
    assert len(store["quest"]) == 6


def test_create_quest_reads_leading_minutes(client) -> None:
    body = client.post("/api/quests", json={
        "title": "Stretch",
        "category": "health",
        "priority": "low",
        "estimated_time": "20min",
    }).json()
    assert body["quest"]["estimated_time"] == 20
