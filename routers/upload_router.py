import uuid
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from services.auth_service import get_current_user
from services.excel_reader_service import describe_sheets, read_workbook
from services.file_upload_service import save_uploaded_file
from services.session_service import create_session, list_sessions
from services.workspace_service import open_workspace
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])

@router.post("/excel")
async def upload_excel(file: UploadFile = File(...), username: str = Depends(get_current_user)):
    # Save file
    try:
        file_path = save_uploaded_file(file, username)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        sheets = read_workbook(file_path)
    except Exception as e:
        logger.exception(f"Could not read uploaded workbook '{file.filename}'")
        raise HTTPException(status_code=400, detail=f"Could not read the Excel file: {e}")

    if not sheets:
        raise HTTPException(status_code=400, detail="Uploaded Excel has no sheets with data.")

    session_id = uuid.uuid4().hex

    # Create a NEW session for every upload
    create_session(
        session_id=session_id,
        username=username,
        file_path=file_path,
        file_name=file.filename,
    )
    open_workspace(session_id, username, file.filename, sheets)

    return {
        "session_id": session_id,
        "file_name": file.filename,
        "sheets": [s.model_dump() for s in describe_sheets(sheets)],
    }

@router.get("/sessions")
async def my_sessions(username: str = Depends(get_current_user)):
    return [
        {"session_id": s.session_id, "file_name": s.file_name}
        for s in list_sessions(username)
    ]
