from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from exceptions import AuthError, ExportError, UserStoreError, WorkspaceError
from routers import auth_router, data_router, persistence_router, upload_router, workspace_router
from utils.logger import get_logger, setup_logger

# Import DB init function
from database import Base, engine
from models.session_db_model import SessionDB

setup_logger(level=config.LOG_LEVEL)
logger = get_logger(__name__)

def create_db():
    Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Excel Chart Studio Backend",
    description="Backend API for turning Excel sheets into styled, reusable charts.",
    version="0.1.0",
)

# Run create_db() once when app starts
@app.on_event("startup")
def on_startup():
    logger.info("Initializing database...")
    create_db()
    logger.info("Database initialized.")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=getattr(exc, "headers", None))

@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

@app.exception_handler(UserStoreError)
async def user_store_error_handler(request: Request, exc: UserStoreError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"message": "Server error"})

@app.exception_handler(WorkspaceError)
@app.exception_handler(ExportError)
async def bad_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content={"message": str(exc)})

app.include_router(auth_router.router)
app.include_router(persistence_router.router)
app.include_router(upload_router.router)
app.include_router(data_router.router)
app.include_router(workspace_router.router)

@app.get("/")
async def root():
    return {"message": "Excel Chart Studio API is running"}
