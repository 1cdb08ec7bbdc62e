from datetime import timedelta

from muddiest.extensions import db
from muddiest.models import Course, Submission
from muddiest.services import analytics


def _add(course_id, session_id, topic, level, created_at):
    db.session.add(
        Submission(
            course_id=course_id,
            session_id=session_id,
            topic=topic,
            confusion="...",
            difficulty_level=level,
            ip_address_hash="h" * 64,
            created_at=created_at,
        )
    )


def test_stats_and_patterns(app, course, live_session, clock):
    now = clock.now
    with app.app_context():
        _add(course.id, live_session.id, "Recursion", "very", now)
        _add(course.id, live_session.id, "recursion", "completely", now - timedelta(hours=1))
        _add(course.id, live_session.id, "Pointers", "slightly", now - timedelta(days=2))
        _add(course.id, live_session.id, "Old topic", "very", now - timedelta(days=30))
        db.session.commit()

        stats = analytics.submission_stats(db.session)
        assert stats == {"totalSubmissions": 4, "activeCourses": 1, "recentSubmissions": 3}

        patterns = analytics.confusion_patterns(db.session, days=7)
        assert [p["count"] for p in patterns] == [2, 1]
        top = patterns[0]
        assert top["topic"].lower() == "recursion"
        assert top["course"] == "Programming Fundamentals II (COSC 1337)"
        assert top["difficultyDistribution"] == {"slightly": 0, "very": 1, "completely": 1}

        wide = analytics.confusion_patterns(db.session, days=60)
        assert len(wide) == 3


def test_patterns_are_per_course(app, course, live_session, clock):
    with app.app_context():
        other = Course(name="Data Structures", code="COSC 2436")
        db.session.add(other)
        db.session.flush()
        _add(course.id, live_session.id, "Recursion", "very", clock.now)
        _add(other.id, live_session.id, "Recursion", "very", clock.now)
        db.session.commit()
        patterns = analytics.confusion_patterns(db.session)
        assert len(patterns) == 2
        assert {p["courseId"] for p in patterns} == {course.id, other.id}


def test_top_ten_only(app, course, live_session, clock):
    with app.app_context():
        for i in range(12):
            _add(course.id, live_session.id, f"Topic {i:02d}", "slightly", clock.now)
        db.session.commit()
        assert len(analytics.confusion_patterns(db.session)) == 10


def test_http_endpoints(client, clock):
    r = client.get("/api/analytics/stats")
    assert r.status_code == 200
    assert r.get_json()["totalSubmissions"] == 0
    r = client.get("/api/analytics/confusion-patterns?days=abc")
    assert r.status_code == 200
    assert r.get_json() == []
