"""End-to-end tests for the workspace endpoints."""

import io
import zipfile

import pytest

from services import user_store_service
from services.workspace_service import close_workspace

pytestmark = pytest.mark.integration


@pytest.fixture
def session_id(auth_client, workbook_path):
    with open(workbook_path, "rb") as f:
        resp = auth_client.post("/upload/excel", files={"file": ("sales.xlsx", f)})
    return resp.json()["session_id"]


def test_workspace_state_after_upload(auth_client, session_id) -> None:
    state = auth_client.get(f"/workspace/{session_id}").json()

    assert state["fileName"] == "sales.xlsx"
    assert state["sheets"] == ["Sales", "Orders"]
    assert state["currentSheetName"] == "Sales"
    assert state["activeCharts"] == []


def test_unknown_session_is_not_found(auth_client) -> None:
    resp = auth_client.get("/workspace/does-not-exist")

    assert resp.status_code == 404
    assert set(resp.json()) == {"message"}


def test_chart_lifecycle(auth_client, session_id) -> None:
    chart = auth_client.post(f"/workspace/{session_id}/charts", json={"chart_type": "bar"}).json()
    chart_id = chart["id"]
    assert chart["config"]["xAxis"]["field"] == "Month"

    config = {**chart["config"], "title": "Renamed", "options": {**chart["config"]["options"], "sortOrder": "desc"}}
    updated = auth_client.put(f"/workspace/{session_id}/charts/{chart_id}", json={"config": config}).json()
    assert updated["config"]["title"] == "Renamed"

    option = auth_client.get(f"/workspace/{session_id}/charts/{chart_id}/options").json()
    assert option["title"]["text"] == "Renamed"

    image = auth_client.get(f"/workspace/{session_id}/charts/{chart_id}/image").json()
    assert image["image_base64"]

    styled = auth_client.post(f"/workspace/{session_id}/charts/{chart_id}/style", json={"preset_id": "3d-effect"}).json()
    assert styled["config"]["options"]["barWidth"] == 75

    assert auth_client.delete(f"/workspace/{session_id}/charts/{chart_id}").status_code == 200
    assert auth_client.delete(f"/workspace/{session_id}/charts/{chart_id}").status_code == 404


def test_select_sheet(auth_client, session_id) -> None:
    state = auth_client.post(f"/workspace/{session_id}/sheet", json={"sheet_name": "Orders"}).json()
    assert state["currentSheetName"] == "Orders"

    assert auth_client.post(f"/workspace/{session_id}/sheet", json={"sheet_name": "Nope"}).status_code == 404


def test_lock_template_apply_and_persist(auth_client, session_id) -> None:
    chart_id = auth_client.post(f"/workspace/{session_id}/charts", json={"chart_type": "line"}).json()["id"]

    resp = auth_client.post(f"/workspace/{session_id}/templates", json={"name": "Empty"})
    assert resp.status_code == 400

    locked_id = auth_client.post(f"/workspace/{session_id}/charts/{chart_id}/lock").json()["id"]
    auth_client.put(f"/workspace/{session_id}/locked/{locked_id}/text", json={"pre_analysis": "<p>Intro</p>"})

    # locked charts are written through to the user's charts.json
    assert [c.id for c in user_store_service.get_locked_charts("alice")] == [locked_id]

    template = auth_client.post(f"/workspace/{session_id}/templates", json={"name": "Monthly", "description": "d"}).json()
    assert template["charts"][0]["preAnalysis"] == "<p>Intro</p>"
    assert [t["id"] for t in auth_client.get("/api/templates").json()] == [template["id"]]

    applied = auth_client.post(
        f"/workspace/{session_id}/templates/{template['id']}/apply",
        json={"matchStrategy": "fuzzy"},
    ).json()
    assert len(applied) == 1
    assert applied[0]["id"].startswith("applied-")

    locked = auth_client.get(f"/workspace/{session_id}/locked").json()
    assert len(locked) == 2

    option = auth_client.get(f"/workspace/{session_id}/locked/{locked_id}/options").json()
    assert option["xAxis"]["data"] == ["Jan", "Feb"]

    assert auth_client.delete(f"/workspace/{session_id}/locked/{locked_id}").status_code == 200
    assert auth_client.delete(f"/workspace/{session_id}/templates/{template['id']}").status_code == 200
    assert auth_client.get("/api/templates").json() == []


def test_exports(auth_client, session_id) -> None:
    assert auth_client.get(f"/workspace/{session_id}/export/pdf").status_code == 400

    chart_id = auth_client.post(f"/workspace/{session_id}/charts", json={"chart_type": "bar"}).json()["id"]
    auth_client.post(f"/workspace/{session_id}/charts/{chart_id}/lock")

    excel = auth_client.get(f"/workspace/{session_id}/export/excel")
    assert excel.status_code == 200
    assert "attachment" in excel.headers["content-disposition"]

    images = auth_client.get(f"/workspace/{session_id}/export/images")
    assert len(zipfile.ZipFile(io.BytesIO(images.content)).namelist()) == 1

    assert auth_client.get(f"/workspace/{session_id}/export/pdf").content.startswith(b"%PDF")
    assert auth_client.get(f"/workspace/{session_id}/export/long-image").headers["content-type"] == "image/png"
    assert auth_client.get(f"/workspace/{session_id}/export/docx").status_code == 404


def test_snapshot_round_trip(auth_client, session_id) -> None:
    auth_client.post(f"/workspace/{session_id}/charts", json={"chart_type": "pie"})
    snapshot = auth_client.get(f"/workspace/{session_id}/snapshot").json()

    auth_client.post(f"/workspace/{session_id}/charts", json={"chart_type": "bar"})
    state = auth_client.post(f"/workspace/{session_id}/snapshot", json={"snapshot": snapshot}).json()

    assert len(state["activeCharts"]) == 1
    assert state["activeCharts"][0]["config"]["type"] == "pie"

    bad = auth_client.post(f"/workspace/{session_id}/snapshot", json={"snapshot": {"activeCharts": [{}]}})
    assert bad.status_code == 400


def test_workspace_is_rebuilt_from_the_stored_upload(auth_client, session_id) -> None:
    close_workspace(session_id)

    state = auth_client.get(f"/workspace/{session_id}").json()

    assert state["sheets"] == ["Sales", "Orders"]


def test_style_presets_and_themes(client) -> None:
    presets = client.get("/workspace/style-presets", params={"chart_type": "radar"}).json()
    assert {p["id"] for p in presets} == {"classic-radar", "dark-radar"}

    themes = client.get("/workspace/color-themes").json()
    assert set(themes) == {"default", "warm", "cool", "pastel", "dark"}
