from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bookshelf.db.common.database_connection import get_db
from bookshelf.db.user.services.user_service import UserService
from bookshelf.db.user.services import user_validation
from bookshelf.db.user.models.user_schemas import (
    LoginResponse, ProfileUpdate, User, UserLogin, UserRegister,
)

router = APIRouter()


@router.post("/users/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(user: UserRegister, db: Session = Depends(get_db)):
    """Đăng ký tài khoản mới"""
    error = user_validation.validate_registration(
        user.username, user.first_name, user.last_name, user.password, user.confirm_password
    )
    if error:
        raise HTTPException(status_code=400, detail=error)

    username = user.username.strip()
    if not UserService.register_user(db, username, user.first_name.strip(),
                                     user.last_name.strip(), user.password):
        raise HTTPException(status_code=400, detail="Username already exists.")
    return UserService.get_user_by_username(db, username)


@router.post("/auth/login", response_model=LoginResponse)
async def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Đăng nhập bằng username và password"""
    if not credentials.username.strip() or not credentials.password:
        raise HTTPException(status_code=400, detail="Please enter your username and password.")

    if not UserService.validate_user_login(db, credentials.username, credentials.password):
        raise HTTPException(status_code=401, detail="Invalid username or password.")

    db_user = UserService.get_user_by_username(db, credentials.username)
    return LoginResponse(user=User.model_validate(db_user), message="Login successful.")


@router.put("/users/{username}/profile", response_model=User)
async def update_profile(username: str, profile: ProfileUpdate, db: Session = Depends(get_db)):
    """Cập nhật thông tin cá nhân; quyền admin giữ nguyên"""
    db_user = UserService.get_user_by_username(db, username)
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")

    error = user_validation.validate_profile_update(
        profile.first_name, profile.last_name, profile.password, profile.confirm_password
    )
    if error:
        raise HTTPException(status_code=400, detail=error)

    if not UserService.update_user_profile(db, username, profile.first_name.strip(),
                                           profile.last_name.strip(), profile.password,
                                           db_user.is_admin):
        raise HTTPException(status_code=500, detail="Failed to update profile.")
    return UserService.get_user_by_username(db, username)
