from muddiest.extensions import db
from muddiest.models import Submission

ALICE = {"REMOTE_ADDR": "198.51.100.7"}
BOB = {"REMOTE_ADDR": "198.51.100.8"}


def _payload(s, **overrides):
    body = {
        "courseId": s.course_id,
        "sessionId": s.id,
        "topic": "Linked lists",
        "confusion": "When do I update the tail pointer?",
        "difficultyLevel": "slightly",
    }
    body.update(overrides)
    return body


def test_create_submission_201(app, client, live_session):
    r = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE)
    assert r.status_code == 201
    body = r.get_json()
    assert body["topic"] == "Linked lists"
    assert body["sessionId"] == live_session.id
    assert "ipAddressHash" not in body and "ip_address_hash" not in body

    with app.app_context():
        sub = db.session.get(Submission, body["id"])
        assert "198.51.100.7" not in sub.ip_address_hash
        assert len(sub.ip_address_hash) == 64


def test_second_submission_is_429_with_reason(client, live_session, clock):
    assert client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE).status_code == 201
    clock.advance(minutes=10)
    r = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE)
    assert r.status_code == 429
    assert r.get_json()["error"] == "Please wait 5 more minutes before submitting again"
    assert r.get_json()["retryAfterMinutes"] == 5
    assert r.headers["Retry-After"] == "300"

    # a different student is unaffected
    assert client.post("/api/submissions", json=_payload(live_session), environ_base=BOB).status_code == 201


def test_fourth_submission_hits_cap(client, live_session, clock):
    for _ in range(3):
        r = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE)
        assert r.status_code == 201
        clock.advance(minutes=16)
    r = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE)
    assert r.status_code == 429
    assert r.get_json() == {"error": "Maximum of 3 submissions allowed per session"}
    assert "Retry-After" not in r.headers


def test_validation_errors(client, live_session):
    r = client.post(
        "/api/submissions",
        json=_payload(live_session, topic="  ", difficultyLevel="extremely"),
        environ_base=ALICE,
    )
    assert r.status_code == 400
    errors = r.get_json()["errors"]
    assert set(errors) == {"topic", "difficultyLevel"}

    r = client.post("/api/submissions", data="not json", environ_base=ALICE)
    assert r.status_code == 400
    assert r.get_json()["error"] == "validation_failed"


def test_submission_needs_live_session_of_that_course(client, live_session, clock):
    r = client.post("/api/submissions", json=_payload(live_session, courseId="other"), environ_base=ALICE)
    assert r.status_code == 404
    r = client.post("/api/submissions", json=_payload(live_session, sessionId="missing"), environ_base=ALICE)
    assert r.status_code == 404

    clock.advance(days=1)
    r = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE)
    assert r.status_code == 404


def test_owner_can_edit_within_session(client, live_session):
    sid = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE).get_json()["id"]
    r = client.put(
        f"/api/submissions/{sid}",
        json={"confusion": "Actually it is the head pointer", "difficultyLevel": "very"},
        environ_base=ALICE,
    )
    assert r.status_code == 200
    body = r.get_json()
    assert body["confusion"] == "Actually it is the head pointer"
    assert body["difficultyLevel"] == "very"
    assert body["topic"] == "Linked lists"

    r = client.get(f"/api/submissions/{sid}", environ_base=ALICE)
    assert r.status_code == 200
    assert r.get_json()["course"]["id"] == live_session.course_id


def test_other_address_cannot_edit_or_read(app, client, live_session):
    sid = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE).get_json()["id"]
    r = client.put(f"/api/submissions/{sid}", json={"topic": "Hijacked"}, environ_base=BOB)
    assert r.status_code == 404
    assert client.get(f"/api/submissions/{sid}", environ_base=BOB).status_code == 404
    with app.app_context():
        assert db.session.get(Submission, sid).topic == "Linked lists"


def test_invalid_edit_changes_nothing(app, client, live_session):
    sid = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE).get_json()["id"]
    r = client.put(
        f"/api/submissions/{sid}",
        json={"topic": "New topic", "difficultyLevel": "nope"},
        environ_base=ALICE,
    )
    assert r.status_code == 400
    assert client.put(f"/api/submissions/{sid}", json={}, environ_base=ALICE).status_code == 400
    with app.app_context():
        assert db.session.get(Submission, sid).topic == "Linked lists"


def test_edit_rejected_after_session_expires(client, live_session, clock):
    sid = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE).get_json()["id"]
    clock.advance(days=1)
    r = client.put(f"/api/submissions/{sid}", json={"topic": "Late edit"}, environ_base=ALICE)
    assert r.status_code == 404


def test_edit_cannot_move_submission(client, course, live_session):
    sid = client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE).get_json()["id"]
    r = client.put(
        f"/api/submissions/{sid}",
        json={"topic": "Stacks", "courseId": "elsewhere", "sessionId": "elsewhere"},
        environ_base=ALICE,
    )
    assert r.status_code == 200
    assert r.get_json()["courseId"] == course.id
    assert r.get_json()["sessionId"] == live_session.id


def test_list_submissions(client, course, live_session):
    client.post("/api/submissions", json=_payload(live_session), environ_base=ALICE)
    client.post("/api/submissions", json=_payload(live_session, topic="Queues"), environ_base=BOB)
    rows = client.get(f"/api/submissions?courseId={course.id}").get_json()
    assert {r["topic"] for r in rows} == {"Linked lists", "Queues"}
    assert all("ipAddressHash" not in r for r in rows)
    assert rows[0]["course"]["code"] == course.code
    assert client.get("/api/submissions?courseId=none").get_json() == []
