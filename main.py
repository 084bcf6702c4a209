import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from sqlalchemy.orm import sessionmaker

from bookshelf.core.exceptions import BookshelfError, bookshelf_error_handler
from bookshelf.core.logging_config import get_logger, setup_logging
from bookshelf.checkout.checkout_registry import CheckoutRegistry
from bookshelf.payments.card.payment_service import PaymentService
from bookshelf.db.common.database_connection import SessionLocal, init_database
from bookshelf.db.common.common_routes import router as common_router
from bookshelf.db.init_db import seed_database
from bookshelf.db.book.api.book_routes import router as book_router
from bookshelf.db.user.api.user_routes import router as user_router
from bookshelf.db.cart.api.cart_routes import router as cart_router
from bookshelf.db.order.api.order_routes import router as order_router
from bookshelf.db.admin.api.admin_routes import router as admin_router

# Load environment variables
load_dotenv()
setup_logging()

logger = get_logger(__name__)


def create_app(session_factory: sessionmaker = SessionLocal, init_db: bool = True) -> FastAPI:
    """
    Tạo FastAPI app.

    ``session_factory`` is used by the checkout controllers, which outlive a
    single request; routes get their session through ``get_db``.
    With ``init_db`` the tables are created and seeded on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_db:
            init_database(bind=session_factory.kw.get("bind"))
            with session_factory() as db:
                seed_database(db)
            logger.info("Database initialized successfully")
        yield
        logger.info("Shutting down")

    app = FastAPI(
        title="Bookshelf API",
        description="Bookstore API: catalog, giỏ hàng, checkout và order history",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware để cho phép frontend truy cập
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Trong production nên chỉ định domain cụ thể
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session_factory = session_factory
    app.state.payment_service = PaymentService()
    app.state.checkout_registry = CheckoutRegistry(session_factory, app.state.payment_service)

    app.add_exception_handler(BookshelfError, bookshelf_error_handler)

    # Health check route
    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return "healthy"

    # Root route
    @app.get("/")
    async def root():
        """Root endpoint trả về thông tin API"""
        return {
            "message": "Welcome to the Bookshelf API",
            "version": "1.0.0",
            "docs": "/docs",
            "endpoints": {
                "Books": "/api/v1/books/",
                "Users": "/api/v1/users/",
                "Cart": "/api/v1/cart/",
                "Orders": "/api/v1/orders/",
                "Admin": "/api/v1/admin/",
            }
        }

    # Include routers từ các modules
    app.include_router(common_router, prefix="/api/v1", tags=["Health"])
    app.include_router(book_router, prefix="/api/v1", tags=["Books"])
    app.include_router(user_router, prefix="/api/v1", tags=["Users"])
    app.include_router(cart_router, prefix="/api/v1", tags=["Cart"])
    app.include_router(order_router, prefix="/api/v1", tags=["Order"])
    app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
