from typing import Dict, Any
from pydantic import BaseModel

class SessionData(BaseModel):
    session_id: str
    username: str        # owner of the upload
    file_path: str
    file_name: str
    meta: Dict[str, Any] = {}
