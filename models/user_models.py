import re
from pydantic import BaseModel

USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_]+")

class Credentials(BaseModel):
    username: str
    password: str

class UserOut(BaseModel):
    username: str

class LoginResponse(BaseModel):
    message: str
    user: UserOut
    token: str

def is_valid_username(username: str) -> bool:
    return bool(username) and USERNAME_PATTERN.fullmatch(username) is not None
