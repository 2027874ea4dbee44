"""Tests for registration, login, token checks and per-user JSON storage."""

import json

import jwt
import pytest

import config
from exceptions import AuthError, UserStoreError
from models.chart_models import ChartTemplate
from services import auth_service, user_store_service

pytestmark = pytest.mark.integration


def _template(template_id: str = "template-1") -> dict:
    return {
        "id": template_id,
        "name": "Monthly",
        "description": "",
        "createdAt": 1700000000000,
        "charts": [
            {
                "config": {"type": "bar", "title": "Revenue", "xAxis": {"field": "Month"}, "series": [{"field": "Revenue"}]},
                "originalHeaders": ["Month", "Revenue"],
            }
        ],
    }


def test_register_rejects_bad_usernames(user_store) -> None:
    for username in ["", "with space", "dash-name", "name\n"]:
        with pytest.raises(AuthError) as exc:
            auth_service.register_user(username, "pw")
        assert exc.value.status_code == 400


def test_register_creates_user_files(user_store) -> None:
    auth_service.register_user("bob_1", "pw")

    users = user_store_service.load_users()
    assert "bob_1" in users
    assert users["bob_1"]["passwordHash"] != "pw"
    assert user_store_service.get_templates("bob_1") == []
    assert user_store_service.get_locked_charts("bob_1") == []

    with pytest.raises(AuthError):
        auth_service.register_user("bob_1", "other")


def test_authenticate(user_store) -> None:
    auth_service.register_user("carol", "right")

    auth_service.authenticate("carol", "right")
    with pytest.raises(AuthError) as exc:
        auth_service.authenticate("carol", "wrong")
    assert exc.value.status_code == 401
    with pytest.raises(AuthError):
        auth_service.authenticate("nobody", "right")


def test_token_round_trip() -> None:
    token = auth_service.create_token("dave")

    assert auth_service.decode_token(token) == "dave"
    assert auth_service.decode_token(token + "x") is None
    assert auth_service.decode_token("garbage") is None


def test_corrupt_templates_file_raises(user_store) -> None:
    auth_service.register_user("erin", "pw")
    path = user_store / "user_data" / "erin" / "templates.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(UserStoreError):
        user_store_service.get_templates("erin")


def test_saved_documents_are_pretty_printed_camel_case(user_store) -> None:
    auth_service.register_user("frank", "pw")

    user_store_service.save_templates("frank", [ChartTemplate.model_validate(_template())])

    text = (user_store / "user_data" / "frank" / "templates.json").read_text(encoding="utf-8")
    assert text.startswith("[\n  {")
    assert json.loads(text)[0]["charts"][0]["originalHeaders"] == ["Month", "Revenue"]


def test_api_register_login_me_logout(client) -> None:
    resp = client.post("/api/register", json={"username": "alice", "password": "secret"})
    assert resp.status_code == 201

    resp = client.post("/api/register", json={"username": "alice", "password": "secret"})
    assert resp.status_code == 400
    assert "message" in resp.json()

    resp = client.post("/api/login", json={"username": "alice", "password": "nope"})
    assert resp.status_code == 401

    resp = client.post("/api/login", json={"username": "alice", "password": "secret"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"] == {"username": "alice"}
    assert body["token"]
    assert resp.cookies.get("token") == body["token"]

    resp = client.get("/api/me")
    assert resp.json() == {"user": {"username": "alice"}}

    client.post("/api/logout")
    client.cookies.clear()
    assert client.get("/api/me").status_code == 401


def test_api_token_errors(client) -> None:
    resp = client.get("/api/templates")
    assert resp.status_code == 401
    assert resp.json() == {"message": "Authentication token not provided."}

    resp = client.get("/api/templates", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 403
    assert resp.json() == {"message": "Invalid token."}


def test_token_for_a_path_escaping_username_is_rejected(client, user_store) -> None:
    token = jwt.encode({"username": "../../escape"}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)

    resp = client.post("/api/templates", json=[_template()], headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 403
    assert not (user_store.parent / "escape").exists()


def test_token_for_an_unregistered_user_is_rejected(client) -> None:
    token = auth_service.create_token("ghost")

    resp = client.get("/api/charts", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 403


def test_user_dir_refuses_invalid_names(user_store) -> None:
    for username in ["..", "../x", "a/b", ""]:
        with pytest.raises(UserStoreError):
            user_store_service.user_dir(username)


def test_api_templates_and_charts_persistence(auth_client) -> None:
    assert auth_client.get("/api/templates").json() == []

    resp = auth_client.post("/api/templates", json=[_template()])
    assert resp.status_code == 200

    templates = auth_client.get("/api/templates").json()
    assert [t["id"] for t in templates] == ["template-1"]
    assert templates[0]["charts"][0]["config"]["xAxis"]["field"] == "Month"

    chart = {
        "id": "locked-1-chart-1",
        "config": _template()["charts"][0]["config"],
        "sourceData": {"sheetName": "Sales", "headers": ["Month", "Revenue"], "data": [["Jan", 1]]},
        "lockedAt": 1700000000000,
    }
    assert auth_client.post("/api/charts", json=[chart]).status_code == 200
    assert auth_client.get("/api/charts").json()[0]["sourceData"]["data"] == [["Jan", 1]]

    assert auth_client.post("/api/charts", json=[{"id": "broken"}]).status_code == 400


def test_api_storage_failure_is_a_generic_server_error(auth_client, user_store) -> None:
    (user_store / "user_data" / "alice" / "charts.json").write_text("[{", encoding="utf-8")

    resp = auth_client.get("/api/charts")

    assert resp.status_code == 500
    assert resp.json() == {"message": "Server error"}
