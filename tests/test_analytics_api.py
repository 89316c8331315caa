"""
Tests for interactions and the analytics summaries.
"""
import pytest


@pytest.fixture
def questions(client):
    qt = client.post("/api/question-types", json={"type_name": "Trivia"}).json()
    genre = client.post("/api/genres", json={"genre_name": "History", "type_id": qt["type_id"]}).json()
    ids = []
    for text in ("First question?", "Second question?", "Third question?"):
        resp = client.post("/api/questions", json={"question": text, "genre_ids": [genre["genre_id"]]})
        ids.append(resp.json()["question_id"])
    return ids


@pytest.fixture
def headers(auth_headers):
    return auth_headers()


def _interact(client, headers, qid, kind="like"):
    return client.post(f"/api/analytics/questions/{qid}/interact", json={"interaction_type": kind}, headers=headers)


def test_requires_authentication(client, questions):
    assert client.get("/api/analytics/users/me").status_code == 401
    assert _interact(client, {}, questions[0]).status_code == 401


def test_like_updates_summaries(client, headers, questions):
    resp = _interact(client, headers, questions[0])
    assert resp.status_code == 200
    assert resp.json()["interaction_type"] == "like"

    analytics = client.get(f"/api/analytics/questions/{questions[0]}", headers=headers).json()
    assert analytics["analytics"]["total_likes"] == 1
    assert analytics["analytics"]["total_interactions"] == 1
    assert analytics["genres"][0]["name"] == "History"

    me = client.get("/api/analytics/users/me", headers=headers).json()
    assert me["total_likes_given"] == 1
    assert me["total_interactions_given"] == 1


def test_repeat_interaction_is_idempotent(client, headers, questions):
    first = _interact(client, headers, questions[0]).json()
    second = _interact(client, headers, questions[0]).json()

    assert first["interaction_id"] == second["interaction_id"]
    analytics = client.get(f"/api/analytics/questions/{questions[0]}", headers=headers).json()
    assert analytics["analytics"]["total_likes"] == 1


def test_different_types_are_separate(client, headers, questions):
    _interact(client, headers, questions[0], "like")
    _interact(client, headers, questions[0], "super_like")

    mine = client.get(f"/api/analytics/questions/{questions[0]}/interactions", headers=headers).json()
    assert sorted(i["interaction_type"] for i in mine) == ["like", "super_like"]

    summary = client.get(f"/api/analytics/questions/{questions[0]}", headers=headers).json()["analytics"]
    assert summary["total_super_likes"] == 1
    assert summary["total_interactions"] == 2


def test_unknown_interaction_type(client, headers, questions):
    assert _interact(client, headers, questions[0], "love").status_code == 422


def test_unknown_question(client, headers, questions):
    assert _interact(client, headers, 9999).status_code == 404
    assert client.get("/api/analytics/questions/9999", headers=headers).status_code == 404


def test_remove_interaction(client, headers, questions):
    _interact(client, headers, questions[0], "dislike")

    removed = client.request(
        "DELETE",
        f"/api/analytics/questions/{questions[0]}/interact",
        json={"interaction_type": "dislike"},
        headers=headers,
    )
    assert removed.status_code == 200
    assert removed.json() == {"question_id": questions[0], "interaction_type": "dislike", "removed": True}

    summary = client.get(f"/api/analytics/questions/{questions[0]}", headers=headers).json()["analytics"]
    assert summary["total_dislikes"] == 0

    again = client.request(
        "DELETE",
        f"/api/analytics/questions/{questions[0]}/interact",
        json={"interaction_type": "dislike"},
        headers=headers,
    )
    assert again.status_code == 404


def test_questions_sorted_by_likes(client, auth_headers, make_user, questions):
    alice = auth_headers(make_user("9000000001", "alice"))
    bob = auth_headers(make_user("9000000002", "bob"))
    _interact(client, alice, questions[2])
    _interact(client, bob, questions[2])
    _interact(client, alice, questions[1])

    page = client.get("/api/analytics/questions", params={"sort_by": "likes", "limit": 2}, headers=alice).json()

    assert [q["question_id"] for q in page["items"]] == [questions[2], questions[1]]
    assert page["total"] == 3
    assert page["total_pages"] == 2

    second = client.get("/api/analytics/questions", params={"sort_by": "likes", "limit": 2, "page": 2}, headers=alice)
    assert [q["question_id"] for q in second.json()["items"]] == [questions[0]]


def test_questions_bad_sort(client, headers):
    resp = client.get("/api/analytics/questions", params={"sort_by": "random"}, headers=headers)
    assert resp.status_code == 422


def test_top_questions(client, headers, questions):
    _interact(client, headers, questions[1], "super_like")

    top = client.get("/api/analytics/top-questions", params={"type": "super_likes", "limit": 1}, headers=headers).json()

    assert top["type"] == "super_likes"
    assert [q["question_id"] for q in top["items"]] == [questions[1]]


def test_user_interaction_history(client, headers, questions):
    _interact(client, headers, questions[0])
    _interact(client, headers, questions[1])

    history = client.get("/api/analytics/users/me/interactions", headers=headers).json()

    assert history["total"] == 2
    assert {i["question"]["question"] for i in history["items"]} == {"First question?", "Second question?"}


def test_fresh_user_has_zero_counters(client, headers):
    me = client.get("/api/analytics/users/me", headers=headers).json()
    assert me["total_interactions_given"] == 0
    assert me["last_updated"] is None
