import os
import uuid
from fastapi import UploadFile
from config import UPLOAD_DIR
from utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = [".xlsx", ".xls"]

def save_uploaded_file(file: UploadFile, username: str) -> str:
    """
    Save the uploaded Excel file under UPLOAD_DIR/<username>/.
    Every upload gets its own file, so re-uploading an edited workbook
    with the same name never serves the older copy.
    """
    ext = os.path.splitext(file.filename or "")[1]
    if ext.lower() not in ALLOWED_EXTENSIONS:
        raise ValueError("Only Excel files (.xlsx, .xls) are supported.")

    user_upload_dir = os.path.join(UPLOAD_DIR, username)
    os.makedirs(user_upload_dir, exist_ok=True)

    unique_name = f"{uuid.uuid4().hex}{ext.lower()}"
    file_path = os.path.join(user_upload_dir, unique_name)

    with open(file_path, "wb") as f:
        f.write(file.file.read())

    logger.info(f"Stored upload '{file.filename}' as {file_path}")
    return file_path
