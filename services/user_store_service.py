"""
Per-user JSON storage.

Layout under DATA_DIR:
    users.json                       {username: {passwordHash, salt, createdAt}}
    user_data/<username>/templates.json
    user_data/<username>/charts.json

Every save rewrites the whole document. There is no locking, so the last
writer wins when two requests save for the same user at once.
"""

import json
import os
from typing import Any, Dict, List

from pydantic import ValidationError

import config
from exceptions import UserStoreError
from models.chart_models import ChartTemplate, LockedChart, dump_model
from models.user_models import is_valid_username
from utils.logger import get_logger

logger = get_logger(__name__)

TEMPLATES_FILE = "templates.json"
CHARTS_FILE = "charts.json"


def _read_json(path: str, default: Any) -> Any:
    if not os.path.exists(path):
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read {path}: {e}")
        raise UserStoreError(f"Failed to read {os.path.basename(path)}") from e


def _write_json(path: str, payload: Any) -> None:
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
    except (OSError, TypeError) as e:
        logger.error(f"Failed to write {path}: {e}")
        raise UserStoreError(f"Failed to write {os.path.basename(path)}") from e


def user_dir(username: str) -> str:
    if not is_valid_username(username):
        raise UserStoreError(f"Invalid username {username!r}")
    return os.path.join(config.USER_DATA_DIR, username)


def load_users() -> Dict[str, Dict[str, Any]]:
    return _read_json(config.USERS_FILE, {})


def save_users(users: Dict[str, Dict[str, Any]]) -> None:
    _write_json(config.USERS_FILE, users)


def create_user_files(username: str) -> None:
    """Empty template and chart documents for a new user."""
    _write_json(os.path.join(user_dir(username), TEMPLATES_FILE), [])
    _write_json(os.path.join(user_dir(username), CHARTS_FILE), [])


def get_templates(username: str) -> List[ChartTemplate]:
    raw = _read_json(os.path.join(user_dir(username), TEMPLATES_FILE), [])
    try:
        return [ChartTemplate.model_validate(item) for item in raw]
    except (ValidationError, TypeError) as e:
        logger.error(f"Corrupt {TEMPLATES_FILE} for user '{username}': {e}")
        raise UserStoreError(f"Corrupt {TEMPLATES_FILE}") from e


def save_templates(username: str, templates: List[ChartTemplate]) -> None:
    _write_json(os.path.join(user_dir(username), TEMPLATES_FILE), [dump_model(t) for t in templates])
    logger.info(f"Saved {len(templates)} template(s) for '{username}'")


def get_locked_charts(username: str) -> List[LockedChart]:
    raw = _read_json(os.path.join(user_dir(username), CHARTS_FILE), [])
    try:
        return [LockedChart.model_validate(item) for item in raw]
    except (ValidationError, TypeError) as e:
        logger.error(f"Corrupt {CHARTS_FILE} for user '{username}': {e}")
        raise UserStoreError(f"Corrupt {CHARTS_FILE}") from e


def save_locked_charts(username: str, charts: List[LockedChart]) -> None:
    _write_json(os.path.join(user_dir(username), CHARTS_FILE), [dump_model(c) for c in charts])
    logger.info(f"Saved {len(charts)} locked chart(s) for '{username}'")
