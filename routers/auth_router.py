from fastapi import APIRouter, Depends, Response

import config
from models.user_models import Credentials, LoginResponse, UserOut
from services.auth_service import TOKEN_COOKIE, authenticate, create_token, get_current_user, register_user

router = APIRouter(prefix="/api", tags=["auth"])

@router.post("/register", status_code=201)
async def register(credentials: Credentials):
    register_user(credentials.username, credentials.password)
    return {"message": "Registration successful."}

@router.post("/login", response_model=LoginResponse)
async def login(credentials: Credentials, response: Response):
    authenticate(credentials.username, credentials.password)
    token = create_token(credentials.username)
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
        max_age=config.TOKEN_TTL_HOURS * 3600,
    )
    return LoginResponse(message="Login successful.", user=UserOut(username=credentials.username), token=token)

@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE)
    return {"message": "Logged out."}

@router.get("/me")
async def me(username: str = Depends(get_current_user)):
    return {"user": UserOut(username=username).model_dump()}
