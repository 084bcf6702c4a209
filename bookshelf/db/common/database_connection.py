import logging
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from bookshelf.core import config

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Tạo engine cho DATABASE_URL.
    SQLite cần check_same_thread=False vì FastAPI chạy route sync trên thread pool,
    và bật foreign keys cho mỗi connection.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Test connections before using them
        pool_recycle=300,    # Recycle connections after 5 minutes
        echo=echo,
    )


# SQLAlchemy setup
engine = build_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency để inject database session vào FastAPI routes
    Sử dụng trong routes với: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def import_models():
    """Import every model module so that Base.metadata knows all tables."""
    from bookshelf.db.book.models import book_models  # noqa: F401
    from bookshelf.db.user.models import user_models  # noqa: F401
    from bookshelf.db.cart.models import cart_models  # noqa: F401
    from bookshelf.db.order.models import order_models  # noqa: F401


def create_tables(bind: Engine = None):
    """
    Tạo tất cả tables trong database
    Gọi hàm này khi khởi tạo ứng dụng lần đầu
    """
    import_models()
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine = None):
    """
    Xóa tất cả tables (chỉ dùng trong development/testing)
    """
    import_models()
    Base.metadata.drop_all(bind=bind or engine)


def init_database(bind: Engine = None):
    """
    Khởi tạo database - tạo tables nếu chưa tồn tại
    """
    try:
        create_tables(bind)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise


def test_connection(bind: Engine = None) -> bool:
    """Kiểm tra kết nối database"""
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
