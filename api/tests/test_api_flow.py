import pytest

pytest.importorskip("fastapi")


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_friend_match_chat_and_expiry_flow(client, seed, clock, auth_headers):
    alice = seed.user("alice", display_name="Alice")
    bob = seed.user("bob", display_name="Bob")
    seed.friends(alice, bob)
    a_headers = auth_headers(alice)
    b_headers = auth_headers(bob)

    eligibility = client.get("/matches/eligibility", headers=a_headers)
    assert eligibility.status_code == 200
    assert eligibility.json()["can_match"] is True

    res = client.post("/matches", json={"mode": "friend"}, headers=a_headers)
    assert res.status_code == 200
    match = res.json()
    session_id = match["session_id"]
    assert match["matched_user"]["user_id"] == bob
    assert match["day_key"] == "2026-03-10"
    assert match["created"] is True
    assert match["topic"]["id"].startswith("topic_")
    assert seed.count("notifications_outbox") == 1

    again = client.post("/matches", json={}, headers=a_headers)
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "already_matched_today"

    sent = client.post(f"/sessions/{session_id}/messages", json={"content": "hi bob"}, headers=a_headers)
    assert sent.status_code == 200
    assert sent.json()["message"]["read_by"] == [alice]
    assert seed.count("notifications_outbox") == 2

    stamp = client.post(
        f"/sessions/{session_id}/messages", json={"kind": "stamp", "stamp_id": "love_001"}, headers=b_headers
    )
    assert stamp.json()["message"]["content"] == "😍"

    assert client.get(f"/sessions/{session_id}/unread", headers=b_headers).json() == {"unread_count": 1}
    summary = client.get("/chat/unread", headers=b_headers).json()
    assert summary["total_unread"] == 1
    assert summary["latest"]["sender_name"] == "Alice"

    assert client.post(f"/sessions/{session_id}/read", headers=b_headers).json() == {"marked_count": 1}
    assert client.post(f"/sessions/{session_id}/read", headers=b_headers).json() == {"marked_count": 0}

    page = client.get(f"/sessions/{session_id}/messages", params={"limit": 1}, headers=b_headers).json()
    assert page["has_more"] is True
    assert page["messages"][0]["content"] == "hi bob"
    rest = client.get(
        f"/sessions/{session_id}/messages", params={"cursor": page["next_cursor"]}, headers=b_headers
    ).json()
    assert [m["kind"] for m in rest["messages"]] == ["stamp"]

    today = client.get("/matches/today", headers=b_headers).json()["matches"]
    assert [m["session_id"] for m in today] == [session_id]

    detail = client.get(f"/sessions/{session_id}", headers=a_headers).json()
    assert detail["state"] == "active"
    assert detail["matched_user"]["display_name"] == "Bob"

    topic = client.get(f"/sessions/{session_id}/topic", headers=b_headers).json()
    assert topic["topic"]["id"] == match["topic"]["id"]

    clock.advance(days=1)
    denied = client.post("/internal/jobs/expire-sessions", headers={"X-Admin-Token": "wrong"})
    assert denied.status_code == 401
    sweep = client.post("/internal/jobs/expire-sessions", headers={"X-Admin-Token": "admin-secret"})
    assert sweep.status_code == 200
    assert sweep.json()["expired_count"] == 1
    assert sweep.json()["today"] == "2026-03-11"

    ended = client.post(f"/sessions/{session_id}/messages", json={"content": "still there?"}, headers=a_headers)
    assert ended.status_code == 410
    assert ended.json()["detail"]["code"] == "session_ended"

    history = client.get(f"/sessions/{session_id}/messages", headers=a_headers).json()
    assert len(history["messages"]) == 2
    assert history["session_state"] == "expired"

    past = client.get("/matches/history", headers=a_headers).json()["sessions"]
    assert past[0]["state"] == "expired"
    assert past[0]["message_count"] == 2


def test_community_match_errors_map_to_http(client, seed, auth_headers):
    alice = seed.user("alice")
    bob = seed.user("bob")
    carol = seed.user("carol")
    outsider = seed.user("outsider")
    club = seed.community("chess", [alice, bob, carol])
    closed = seed.community("closed", [alice, bob], active=False)
    seed.session(bob, carol, mode="community", community_id=club)

    taken = client.post("/matches", json={"community_id": club}, headers=auth_headers(alice))
    assert taken.status_code == 409
    assert taken.json()["detail"]["code"] == "no_available_candidates"

    not_member = client.post("/matches", json={"mode": "community", "community_id": club}, headers=auth_headers(outsider))
    assert not_member.status_code == 403
    assert not_member.json()["detail"]["code"] == "not_a_member"

    inactive = client.post("/matches", json={"community_id": closed}, headers=auth_headers(alice))
    assert inactive.status_code == 409
    assert inactive.json()["detail"]["code"] == "community_inactive"

    no_friends = client.post("/matches", json={"mode": "friend"}, headers=auth_headers(outsider))
    assert no_friends.status_code == 409
    assert no_friends.json()["detail"]["code"] == "no_candidates"

    bad_mode = client.post("/matches", json={"mode": "community"}, headers=auth_headers(alice))
    assert bad_mode.status_code == 400
    assert bad_mode.json()["detail"]["code"] == "invalid_request"

    eligibility = client.get("/matches/eligibility", params={"community_id": club}, headers=auth_headers(alice)).json()
    assert eligibility == {"can_match": False, "reason": "no_available_candidates", "available_count": 0}


def test_session_access_errors_map_to_http(client, seed, auth_headers):
    alice = seed.user("alice")
    bob = seed.user("bob")
    mallory = seed.user("mallory")
    session_id = seed.session(alice, bob)

    missing = client.get("/sessions/does-not-exist/messages", headers=auth_headers(alice))
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "session_not_found"

    forbidden = client.get(f"/sessions/{session_id}/messages", headers=auth_headers(mallory))
    assert forbidden.status_code == 403
    assert forbidden.json()["detail"]["code"] == "forbidden"

    blank = client.post(f"/sessions/{session_id}/messages", json={"content": "  "}, headers=auth_headers(alice))
    assert blank.status_code == 400
    assert blank.json()["detail"]["code"] == "invalid_message"

    assigned = client.post(f"/sessions/{session_id}/topic", headers=auth_headers(bob))
    assert assigned.status_code == 200
    assert assigned.json()["needs_assignment"] is False
    assert client.post(f"/sessions/{session_id}/topic", headers=auth_headers(mallory)).status_code == 403


def test_catalog_routes(client):
    stamps = client.get("/stamps").json()["categories"]
    assert [c["id"] for c in stamps] == ["face", "gesture", "symbol"]
    assert sum(len(c["stamps"]) for c in stamps) == 30

    topics = client.get("/topics").json()["categories"]
    assert [c["id"] for c in topics] == ["daily", "hobby", "food", "work", "random"]
    assert sum(len(c["topics"]) for c in topics) == 30


def test_match_start_is_rate_limited(client, seed, auth_headers, monkeypatch):
    from dailymatch.services import rate_limit

    alice = seed.user("alice")
    original = rate_limit.limiter.check
    monkeypatch.setattr(rate_limit.limiter, "check", lambda key, limit, window_seconds: original(key, 1, window_seconds))

    first = client.post("/matches", json={}, headers=auth_headers(alice))
    assert first.status_code == 409
    second = client.post("/matches", json={}, headers=auth_headers(alice))
    assert second.status_code == 429
    assert "Retry-After" in second.headers


def test_match_start_budget_is_per_user(client, seed, auth_headers, monkeypatch):
    from dailymatch.services import rate_limit

    alice = seed.user("alice")
    carol = seed.user("carol")
    original = rate_limit.limiter.check
    monkeypatch.setattr(rate_limit.limiter, "check", lambda key, limit, window_seconds: original(key, 2, window_seconds))

    for _ in range(2):
        client.post("/matches", json={}, headers=auth_headers(alice))
    assert client.post("/matches", json={}, headers=auth_headers(alice)).status_code == 429

    res = client.post("/matches", json={}, headers=auth_headers(carol))
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "no_candidates"


def test_oversized_message_page_is_capped(client, seed, auth_headers):
    alice = seed.user("alice")
    bob = seed.user("bob")
    session_id = seed.session(alice, bob)
    client.post(f"/sessions/{session_id}/messages", json={"content": "hello"}, headers=auth_headers(alice))

    res = client.get(f"/sessions/{session_id}/messages", params={"limit": 150}, headers=auth_headers(bob))
    assert res.status_code == 200
    assert len(res.json()["messages"]) == 1


def test_outbox_rows_use_request_clock(client, seed, clock, auth_headers):
    from sqlalchemy import text

    from dailymatch.services.calendar import epoch_ms

    alice = seed.user("alice")
    bob = seed.user("bob")
    seed.friends(alice, bob)

    assert client.post("/matches", json={"mode": "friend"}, headers=auth_headers(alice)).status_code == 200
    created = seed.db.execute(text("SELECT created_at FROM notifications_outbox")).scalar()
    assert created == epoch_ms(clock.now())


def test_sweep_trigger_rejects_bad_admin_token(client):
    res = client.post("/internal/jobs/expire-sessions", headers={"X-Admin-Token": "wrong"})
    assert res.status_code == 401
    assert res.json()["detail"] == {"code": "unauthenticated", "message": "Invalid admin token"}
