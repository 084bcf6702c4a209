import logging
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional, List

from bookshelf.core import config
from bookshelf.db.user.models.user_models import User
from bookshelf.utils import password_utils

logger = logging.getLogger(__name__)


class UserService:
    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        """Lấy user theo ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_username(db: Session, username: str) -> Optional[User]:
        """Lấy user theo username"""
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def get_user_id_by_username(db: Session, username: str) -> Optional[int]:
        user = UserService.get_user_by_username(db, username)
        return user.id if user else None

    @staticmethod
    def get_all_users(db: Session) -> List[User]:
        """Lấy danh sách users"""
        return db.query(User).order_by(User.id).all()

    @staticmethod
    def is_admin_user(db: Session, username: str) -> bool:
        user = UserService.get_user_by_username(db, username)
        return bool(user and user.is_admin)

    @staticmethod
    def register_user(db: Session, username: str, first_name: str, last_name: str,
                      password: str, is_admin: bool = False) -> bool:
        """Đăng ký user mới; trả về False nếu username đã tồn tại"""
        db_user = User(
            username=username,
            first_name=first_name,
            last_name=last_name,
            password=password_utils.hash_password(password),
            is_admin=is_admin,
        )
        try:
            db.add(db_user)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info(f"Registration rejected, username already taken: {username}")
            return False
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error registering user {username}: {e}")
            return False
        logger.info(f"Registered user {username} (admin={is_admin})")
        return True

    @staticmethod
    def validate_user_login(db: Session, username: str, password: str) -> bool:
        """
        Xác thực user với username và password.

        Stored bcrypt hashes are verified directly. A row that still holds a
        plaintext password is compared as-is and, on a match, rewritten with a
        bcrypt hash so the next login takes the normal path.
        """
        user = UserService.get_user_by_username(db, username)
        if not user or not user.password:
            return False

        if password_utils.is_bcrypt_hash(user.password):
            return password_utils.verify_password(password, user.password)

        if not config.ALLOW_LEGACY_PASSWORDS:
            return False

        matches = user.password == password
        if matches:
            user.password = password_utils.hash_password(password)
            try:
                db.commit()
                logger.info(f"Migrated legacy password for user {username}")
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error migrating legacy password for {username}: {e}")
        return matches

    @staticmethod
    def _password_to_store(existing: Optional[User], password: Optional[str]) -> Optional[str]:
        if password is None or not password.strip():
            return existing.password if existing else None
        if password_utils.is_bcrypt_hash(password):
            return password
        return password_utils.hash_password(password)

    @staticmethod
    def update_user_profile(db: Session, username: str, first_name: str, last_name: str,
                            password: Optional[str], is_admin: bool) -> bool:
        """Cập nhật profile theo username; password trống thì giữ nguyên"""
        db_user = UserService.get_user_by_username(db, username)
        if not db_user:
            return False

        db_user.first_name = first_name
        db_user.last_name = last_name
        db_user.password = UserService._password_to_store(db_user, password)
        db_user.is_admin = is_admin
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating profile for {username}: {e}")
            return False
        return True

    @staticmethod
    def update_user_profile_by_id(db: Session, user_id: int, username: str, first_name: str,
                                  last_name: str, password: Optional[str], is_admin: bool) -> bool:
        """Cập nhật profile theo ID, kể cả username"""
        db_user = UserService.get_user(db, user_id)
        if not db_user:
            return False

        db_user.username = username
        db_user.first_name = first_name
        db_user.last_name = last_name
        db_user.password = UserService._password_to_store(db_user, password)
        db_user.is_admin = is_admin
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating user {user_id}: {e}")
            return False
        return True

    @staticmethod
    def delete_user(db: Session, user_id: int) -> bool:
        """Xóa user"""
        db_user = UserService.get_user(db, user_id)
        if not db_user:
            return False

        try:
            db.delete(db_user)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error deleting user {user_id}: {e}")
            return False
        return True
