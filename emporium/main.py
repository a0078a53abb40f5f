import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from emporium.config import Settings, get_settings
from emporium.db import build_engine, build_session_factory, create_schema
from emporium.errors import AppError
from emporium.routers import auth, cart, orders, products, uploads
from emporium.services.payments import PaymentGateway, StripeGateway

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder({"message": exc.message, **exc.details}))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder({"message": "Invalid input", "details": exc.errors()}),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(settings: Optional[Settings] = None, payment_gateway: Optional[PaymentGateway] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    app = FastAPI(title="Emporium API")
    engine = build_engine(settings.DATABASE_URL)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.payment_gateway = payment_gateway or StripeGateway(
        settings.STRIPE_SECRET_KEY, settings.STRIPE_WEBHOOK_SECRET
    )

    @app.on_event("startup")
    def on_startup():
        # Ensure all DB tables exist
        create_schema(engine)

    @app.on_event("shutdown")
    def on_shutdown():
        engine.dispose()

    register_exception_handlers(app)

    # Ensure upload directory exists before mounting
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)

    # Serve uploaded images
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    # CORS for the storefront and admin frontends; cookies need credentials
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(auth.router, tags=["auth"])
    app.include_router(auth.admin_router, tags=["admin-auth"])
    app.include_router(products.router, tags=["products"])
    app.include_router(products.admin_router, tags=["admin-products"])
    app.include_router(cart.router, prefix="/api/cart", tags=["cart"])
    app.include_router(orders.router, prefix="/api/order", tags=["orders"])
    app.include_router(orders.account_router, prefix="/api/account/orders", tags=["account"])
    app.include_router(orders.admin_router, prefix="/api/admin/orders", tags=["admin-orders"])
    app.include_router(uploads.router, prefix="/api/admin", tags=["admin-uploads"])

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the Emporium API"}

    return app


# --- Entry point for local runs ---
if __name__ == "__main__":
    import os
    import uvicorn

    port = int(os.environ.get("PORT", 4000))
    uvicorn.run("emporium.main:create_app", factory=True, host="0.0.0.0", port=port)
