"""Pytest fixtures shared across the unit and integration tests."""

import os
import tempfile
from collections.abc import Sequence
from datetime import datetime

# config reads these at import time, so they must be set before any app module is imported
_TEST_ROOT = tempfile.mkdtemp(prefix="excel_chart_studio_tests_")
os.environ.setdefault("DATA_DIR", os.path.join(_TEST_ROOT, "server-data"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TEST_ROOT, "uploads"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TEST_ROOT, 'sessions.db')}")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

import config
from models.chart_models import AxisBinding, ChartConfig, ChartOptions, ChartType, SeriesBinding, SheetData


@pytest.fixture
def user_store(tmp_path, monkeypatch):
    """Point the per-user JSON storage at an empty temporary directory."""

    users_file = tmp_path / "users.json"
    user_data_dir = tmp_path / "user_data"
    user_data_dir.mkdir()
    monkeypatch.setattr(config, "USERS_FILE", str(users_file))
    monkeypatch.setattr(config, "USER_DATA_DIR", str(user_data_dir))
    return tmp_path


@pytest.fixture
def client(user_store):
    """Return a TestClient running the app's startup hooks."""

    from main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_client(client):
    """Return a TestClient logged in as alice."""

    client.post("/api/register", json={"username": "alice", "password": "secret"})
    resp = client.post("/api/login", json={"username": "alice", "password": "secret"})
    client.headers["Authorization"] = f"Bearer {resp.json()['token']}"
    return client


@pytest.fixture
def sales_sheet():
    return SheetData(
        sheet_name="Sales",
        headers=["Month", "Revenue", "Region"],
        data=[
            ["Jan", 100, "North"],
            ["Feb", 200, "South"],
            ["Jan", 150, None],
            ["Mar", 50, "North"],
        ],
    )


@pytest.fixture
def bar_config():
    def build(**options):
        return ChartConfig(
            type=options.pop("chart_type", ChartType.BAR),
            title="Revenue by month",
            x_axis=AxisBinding(field="Month", title="Month"),
            y_axis=AxisBinding(field="Revenue", title="Revenue"),
            series=[SeriesBinding(field="Revenue", name="Revenue")],
            options=ChartOptions(**options),
        )

    return build


@pytest.fixture
def workbook_path(tmp_path):
    """Write a small workbook: a sales sheet, a dated orders sheet and an empty sheet."""

    workbook = Workbook()
    sales = workbook.active
    sales.title = "Sales"
    sales.append(["Month", "Revenue", "Region"])
    sales.append(["Jan", 100, "North"])
    sales.append(["Feb", 200, "South"])
    sales.append(["Jan", 150, "North"])

    orders = workbook.create_sheet("Orders")
    orders.append(["Order Date", "Amount"])
    orders.append([datetime(2024, 1, 15), 10])
    orders.append([datetime(2024, 2, 1), 20])

    workbook.create_sheet("Empty")

    path = tmp_path / "sales.xlsx"
    workbook.save(path)
    return path


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Every test carries exactly one of the `unit` or `integration` markers."""

    invalid = [
        item.nodeid
        for item in items
        if (item.get_closest_marker("unit") is None) == (item.get_closest_marker("integration") is None)
    ]
    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(f"Each test must be marked either `unit` or `integration`:\n{joined}")
