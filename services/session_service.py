from typing import List, Optional

from database import SessionLocal
from models.session_db_model import SessionDB
from models.session_models import SessionData


def _to_data(row: SessionDB) -> SessionData:
    return SessionData(
        session_id=row.session_id,
        username=row.username,
        file_path=row.file_path,
        file_name=row.file_name,
        meta=dict(row.meta or {}),
    )


def create_session(session_id: str, username: str, file_path: str, file_name: str, meta: Optional[dict] = None) -> SessionData:
    with SessionLocal() as db:
        session = SessionDB(
            session_id=session_id,
            username=username,
            file_path=file_path,
            file_name=file_name,
            meta=meta or {},
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        return _to_data(session)


def get_session(session_id: str) -> Optional[SessionData]:
    with SessionLocal() as db:
        row = db.query(SessionDB).filter(SessionDB.session_id == session_id).first()
        return _to_data(row) if row else None


def list_sessions(username: str) -> List[SessionData]:
    with SessionLocal() as db:
        rows = db.query(SessionDB).filter(SessionDB.username == username).all()
        return [_to_data(row) for row in rows]
