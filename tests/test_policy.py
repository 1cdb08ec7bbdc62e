import pytest
from flask import Flask, g
from muddiest.services import policy, tokens
from muddiest.services.errors import AuthorizationDenied


def make_app():
    app = Flask(__name__)
    app.config.update(SECRET_KEY="x", TESTING=True, OWNER_TOKEN_MAX_AGE=60)
    return app


def test_require_owner_missing_token():
    app = make_app()
    @policy.require_owner
    def v(): return "ok", 200
    with app.test_request_context("/x"):
        with pytest.raises(AuthorizationDenied) as exc:
            v()
        assert exc.value.status_code == 403
        assert exc.value.to_payload() == {"error": "forbidden"}


def test_require_owner_rejects_other_secret():
    app, other = make_app(), make_app()
    other.config["SECRET_KEY"] = "y"
    with other.app_context():
        foreign = tokens.generate(tokens.KIND_OWNER, "mallory")
    @policy.require_owner
    def v(): return "ok", 200
    with app.test_request_context("/x", headers={policy.OWNER_HEADER: foreign}):
        with pytest.raises(AuthorizationDenied):
            v()


def test_require_owner_rejects_wrong_kind():
    app = make_app()
    @policy.require_owner
    def v(): return "ok", 200
    with app.app_context():
        tok = tokens.generate("voter", "someone")
    with app.test_request_context("/x", headers={policy.OWNER_HEADER: tok}):
        with pytest.raises(AuthorizationDenied):
            v()


def test_require_owner_ok_sets_label():
    app = make_app()
    @policy.require_owner
    def v(): return g.owner, 200
    with app.app_context():
        tok = tokens.generate(tokens.KIND_OWNER, "prof-smith")
    with app.test_request_context("/x", headers={policy.OWNER_HEADER: tok}):
        assert v() == ("prof-smith", 200)


def test_api_answers_forbidden_as_json(client):
    r = client.post("/api/courses", json={"name": "Calculus I", "code": "MATH 2413"})
    assert r.status_code == 403
    assert r.get_json() == {"error": "forbidden"}


def test_verify_expired():
    app = make_app()
    with app.app_context():
        tok = tokens.generate(tokens.KIND_OWNER, "prof")
        assert tokens.verify(tokens.KIND_OWNER, tok, 60) == "prof"
        assert tokens.verify(tokens.KIND_OWNER, tok, -1) is None
        assert tokens.verify(tokens.KIND_OWNER, "", 60) is None
