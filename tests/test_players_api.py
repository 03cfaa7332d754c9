from datetime import timedelta

from players import player_activity_score, player_stats, recommendations


def test_leaderboard_defaults_to_level_desc(client) -> None:
    response = client.get("/api/players")
    assert response.status_code == 200
    body = response.json()
    assert [p["username"] for p in body["players"]] == ["sam", "alex", "jordan", "demo"]
    assert [p["leaderboard_position"] for p in body["players"]] == [1, 2, 3, 4]
    assert body["sort_applied"] == {"by": "level", "order": "desc"}
    assert body["pagination"] == {"limit": 10, "returned": 4, "has_more": False}


def test_leaderboard_stats(client) -> None:
    stats = client.get("/api/players").json()["leaderboard_stats"]
    assert stats["total_players"] == 4
    assert stats["average_level"] == 12
    assert stats["total_xp_earned"] == 7540
    assert stats["average_completion_rate"] == 13
    assert stats["most_active_player"]["username"] == "sam"
    assert stats["most_active_player"]["activity_score"] == 390


def test_leaderboard_sort_and_limit(client) -> None:
    body = client.get("/api/players", params={"sort_by": "xp", "order": "asc", "limit": "2"}).json()
    assert [p["username"] for p in body["players"]] == ["demo", "jordan"]
    assert body["pagination"]["has_more"] is True

    body = client.get("/api/players", params={"limit": "500"}).json()
    assert body["pagination"]["limit"] == 50


def test_rank_filter_keeps_global_xp_total(client) -> None:
    body = client.get("/api/players", params={"rank": "expert"}).json()
    assert [p["username"] for p in body["players"]] == ["alex"]
    assert body["leaderboard_stats"]["total_players"] == 1
    assert body["leaderboard_stats"]["average_level"] == 15
    assert body["leaderboard_stats"]["total_xp_earned"] == 7540


def test_rank_filter_with_no_matches(client) -> None:
    body = client.get("/api/players", params={"rank": "legend"}).json()
    assert body["players"] == []
    assert body["leaderboard_stats"]["average_level"] == 0
    assert body["leaderboard_stats"]["most_active_player"] is None


def test_player_profile(client) -> None:
    response = client.get("/api/players/Alex")
    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "alex"
    stats = body["calculated_stats"]
    assert stats["rank"] == "Expert"
    assert stats["completion_rate"] == 20
    assert stats["average_xp_per_quest"] == 2450
    assert stats["streak_status"] == "Hot Streak! 🔥"
    assert stats["most_active_category"] == "work"
    assert stats["activity_score"] == 245
    assert body["achievement_details"][1] == {
        "name": "Early Bird",
        "description": "Completed 5 quests before their deadline",
        "rarity": "Uncommon",
    }
    assert [r["type"] for r in body["recommendations"]] == ["improvement"]
    assert "quest_details" not in body


def test_player_profile_options(client) -> None:
    body = client.get("/api/players/jordan", params={"include_quests": "true", "include_stats": "false"}).json()
    assert "calculated_stats" not in body
    assert body["quest_details"]["active"][0] == {
        "id": 2,
        "endpoint": "/api/quests/2",
        "quick_access": "/api/quests/2?api_key=demo_key_12345",
    }
    assert body["quest_details"]["completed"] == []


def test_unknown_player(client) -> None:
    response = client.get("/api/players/nobody")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Player not found"
    assert body["available_players"] == ["alex", "jordan", "sam", "demo"]


def test_update_preferences_is_partial(client, store, now) -> None:
    response = client.put("/api/players/jordan/preferences", json={"theme": "dark", "notifications": True})
    assert response.status_code == 200
    prefs = response.json()["player"]["preferences"]
    assert prefs == {
        "categories": ["personal", "learning"],
        "difficulty": "easy",
        "notifications": True,
        "theme": "dark",
    }
    assert store["player"].get("jordan").last_active == now


def test_update_preferences_with_empty_body_still_touches_last_active(client, store, now) -> None:
    before = store["player"].get("alex").preferences.model_dump()
    response = client.put("/api/players/alex/preferences", json={})
    assert response.status_code == 200
    assert store["player"].get("alex").preferences.model_dump() == before
    assert store["player"].get("alex").last_active == now


def test_update_preferences_unknown_player(client) -> None:
    response = client.put("/api/players/ghost/preferences", json={"theme": "dark"})
    assert response.status_code == 404


def test_activity_score_halves_after_ten_idle_days(store, now) -> None:
    alex = store["player"].get("alex")
    fresh = player_activity_score(alex, alex.last_active)
    idle = player_activity_score(alex, alex.last_active + timedelta(days=10))
    assert fresh == 245
    assert idle == 123


def test_recommendations_are_capped(store, now) -> None:
    demo = store["player"].get("demo")
    recs = recommendations(demo, player_stats(demo, now))
    assert [r["type"] for r in recs] == ["improvement", "streak", "variety"]


def test_update_preferences_without_body_touches_last_active(client, store, now) -> None:
    before = store["player"].get("sam").preferences.model_dump()
    response = client.put("/api/players/sam/preferences")
    assert response.status_code == 200
    assert store["player"].get("sam").preferences.model_dump() == before
    assert store["player"].get("sam").last_active == now


def test_unknown_player_wins_over_bad_preferences(client) -> None:
    response = client.put("/api/players/ghost/preferences", json={"notifications": "maybe"})
    assert response.status_code == 404
    assert response.json()["error"] == "Player not found"


def test_bad_preferences_for_known_player_change_nothing(client, store) -> None:
    before = store["player"].get("alex").model_dump()
    response = client.put("/api/players/alex/preferences", json={"notifications": "maybe", "theme": "dark"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["validation_errors"][0].startswith("notifications:")
    assert store["player"].get("alex").model_dump() == before
