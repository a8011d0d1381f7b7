from datetime import datetime, timedelta, timezone

from conftest import ADMIN_EMAIL, STUDENT_EMAIL


def test_meta_endpoints(client):
    assert client.get("/").json()["status"] == "ok"
    body = client.get("/healthz").json()
    assert body["status"] == "ok"
    assert "uptime_seconds" in body


def test_request_id_is_echoed(client):
    resp = client.get("/", headers={"X-Request-Id": "abc-123"})
    assert resp.headers["X-Request-Id"] == "abc-123"


def test_login_and_me(client, store):
    resp = client.post("/auth/login", json={"email": STUDENT_EMAIL, "password": "student-pass"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["is_admin"] is False
    token = body["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me == {"id": "student-1", "email": STUDENT_EMAIL, "is_admin": False}
    assert len(store.rows("user_sessions")) == 1


def test_login_conflict_is_409(client, store):
    store.seed(
        "user_sessions",
        {
            "id": "student-1",
            "email": STUDENT_EMAIL,
            "user_id": "student-1",
            "created_at": (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat(),
        },
    )
    resp = client.post("/auth/login", json={"email": STUDENT_EMAIL, "password": "student-pass"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "session_conflict"


def test_wrong_password_is_401(client):
    resp = client.post("/auth/login", json={"email": STUDENT_EMAIL, "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "invalid_credentials"


def test_admin_login_flag(client):
    resp = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "admin-pass"})
    assert resp.json()["is_admin"] is True


def test_logout_removes_session(client, store, student_headers):
    client.post("/auth/login", json={"email": STUDENT_EMAIL, "password": "student-pass"})
    resp = client.post("/auth/logout", headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["session_cleared"] is True
    assert store.rows("user_sessions") == []


def test_missing_token_is_401(client):
    resp = client.get("/topics/")
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthenticated"


def test_admin_routes_are_guarded(client, student_headers):
    resp = client.post("/topics/", json={"name": "পাইথন"}, headers=student_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


def test_topic_and_video_flow(client, admin_headers, student_headers):
    resp = client.post("/topics/", json={"name": "পাইথন", "description": "শুরু"}, headers=admin_headers)
    assert resp.status_code == 201
    topic = resp.json()
    assert topic["order"] == 0

    bad = client.post(
        "/videos/",
        json={"title": "ভূমিকা", "youtube_url": "https://vimeo.com/1", "topic_id": topic["id"]},
        headers=admin_headers,
    )
    assert bad.status_code == 422
    assert bad.json() == {"detail": "সঠিক ইউটিউব লিংক দিন!", "code": "validation_error", "field": "youtube_url"}

    resp = client.post(
        "/videos/",
        json={"title": "ভূমিকা", "youtube_url": "https://youtu.be/dQw4w9WgXcQ", "topic_id": topic["id"]},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    video = resp.json()
    assert video["video_id"] == "dQw4w9WgXcQ"

    listed = client.get("/videos/", params={"topic_id": topic["id"]}, headers=student_headers).json()
    assert listed[0]["topic_name"] == "পাইথন"
    assert listed[0]["thumbnail_url"].endswith("/mqdefault.jpg")

    opened = client.post(f"/progress/videos/{video['id']}/open", headers=student_headers).json()
    assert opened["can_access"] is True

    done = client.post(
        f"/progress/videos/{video['id']}/complete", json={"summary": "বুঝেছি"}, headers=student_headers
    ).json()
    assert done["points_awarded"] == 5

    board = client.get("/leaderboard", headers=student_headers).json()
    assert board["my_rank"] == 0
    assert board["entries"][0]["profile"]["points"] == 5


def test_unknown_record_is_404(client, admin_headers):
    resp = client.patch("/topics/missing", json={"name": "x"}, headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "store_not_found"


def test_store_outage_is_503(client, store, admin_headers):
    from pathshala.common.errors import StoreError

    store.fail("topics", "insert", StoreError(kind="transient"))
    resp = client.post("/topics/", json={"name": "পাইথন"}, headers=admin_headers)
    assert resp.status_code == 503
    assert resp.json()["code"] == "store_transient"


def test_challenge_partial_failure_is_502(client, store, admin_headers):
    from pathshala.common.errors import StoreError

    payload = {
        "type": "7day",
        "title": "প্রজেক্ট",
        "start_date": "2024-05-01T00:00:00Z",
        "end_date": "2024-05-08T00:00:00Z",
    }
    assert client.post("/challenges/", json=payload, headers=admin_headers).status_code == 201
    store.fail("challenges", "insert", StoreError(kind="transient"), times=5)
    resp = client.post("/challenges/", json=payload, headers=admin_headers)
    assert resp.status_code == 502
    body = resp.json()
    assert body["code"] == "partial_failure"
    assert body["remaining"] == ["insert"]


def test_upload_endpoint(client, student_headers):
    resp = client.post(
        "/files/upload",
        data={"folder": "avatars"},
        files={"file": ("me.png", b"\x89PNG", "image/png")},
        headers=student_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "me.png"

    resp = client.post(
        "/files/upload",
        data={"folder": "avatars"},
        files={"file": ("cv.pdf", b"%PDF", "application/pdf")},
        headers=student_headers,
    )
    assert resp.status_code == 415
    assert resp.json()["code"] == "upload_invalid_format"


def test_dashboard_counts(client, store, admin_headers):
    store.seed("user_profiles", {"id": "p1", "user_id": "u1", "points": 3}, {"id": "p2", "user_id": "u2", "points": 9})
    store.seed("events", {"id": "e1", "title": "লাইভ", "date": "2024-05-01T10:00:00Z"})
    body = client.get("/dashboard/stats", headers=admin_headers).json()
    assert body["counts"] == {"users": 2, "videos": 0, "topics": 0, "posts": 0, "events": 1}
    assert body["loading"] == []
    assert [p["user_id"] for p in body["top_users"]] == ["u2", "u1"]


def test_calendar_endpoints(client, admin_headers, student_headers):
    resp = client.post(
        "/events/",
        json={"title": "লাইভ ক্লাস", "date": "2030-01-02T15:00:00Z", "type": "live"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    on_day = client.get("/events/", params={"day": "2030-01-02"}, headers=student_headers).json()
    assert [e["title"] for e in on_day] == ["লাইভ ক্লাস"]
    upcoming = client.get("/events/upcoming", headers=student_headers).json()
    assert len(upcoming) == 1


def test_events_are_grouped_by_local_day(client, admin_headers, student_headers):
    resp = client.post(
        "/events/",
        json={"title": "মধ্যরাতের লাইভ", "date": "2030-01-02T00:00:00+06:00", "type": "live"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    local_day = client.get("/events/", params={"day": "2030-01-02"}, headers=student_headers).json()
    assert [e["title"] for e in local_day] == ["মধ্যরাতের লাইভ"]
    utc_day = client.get("/events/", params={"day": "2030-01-01"}, headers=student_headers).json()
    assert utc_day == []
