from pydantic import BaseModel, ConfigDict
from typing import Optional


# User schemas
class UserBase(BaseModel):
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_admin: bool = False


class UserRegister(BaseModel):
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    password: str = ""
    confirm_password: str = ""


class UserLogin(BaseModel):
    username: str
    password: str


class ProfileUpdate(BaseModel):
    first_name: str = ""
    last_name: str = ""
    password: str = ""
    confirm_password: str = ""


class AdminUserUpdate(BaseModel):
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    password: str = ""
    confirm_password: str = ""
    is_admin: bool = False


class User(UserBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    user: User
    message: str
