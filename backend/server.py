import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from starlette.middleware.cors import CORSMiddleware

import config
from admin_routes import admin_router
from booking_routes import booking_router
from chat_routes import chat_router
from chatbot_helper import ChatbotClient, build_chatbot_client
from database import create_client, ensure_indexes
from payment_routes import payment_router
from session_routes import session_router
from stripe_service import StripeService
from study_routes import study_router
from user_routes import user_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    db: Optional[AsyncIOMotorDatabase] = None,
    stripe_service: Optional[StripeService] = None,
    chatbot: Optional[ChatbotClient] = None,
) -> FastAPI:
    app = FastAPI(title="StudyHub API")

    app.state.mongo_client = None
    if db is None:
        app.state.mongo_client = create_client(config.MONGO_URL)
        db = app.state.mongo_client[config.DB_NAME]
    app.state.db = db
    app.state.stripe_service = stripe_service or StripeService(
        secret_key=config.STRIPE_SECRET_KEY,
        currency=config.STRIPE_CURRENCY,
        timeout_seconds=config.STRIPE_TIMEOUT_SECONDS,
    )
    app.state.chatbot = chatbot or build_chatbot_client(
        api_key=config.OPENROUTER_API_KEY,
        model=config.CHATBOT_MODEL,
        base_url=config.CHATBOT_BASE_URL,
        max_tokens=config.CHATBOT_MAX_TOKENS,
        timeout_seconds=config.CHATBOT_TIMEOUT_SECONDS,
        site_url=config.CHATBOT_SITE_URL,
        site_title=config.CHATBOT_SITE_TITLE,
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.exception(
                "request_id=%s method=%s path=%s status=500 duration_ms=%s error=%s",
                request_id,
                request.method,
                request.url.path,
                duration_ms,
                str(e),
            )
            raise
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%s",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(
            "HTTPException request_id=%s path=%s status=%s detail=%s",
            getattr(request.state, "request_id", "-"),
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_: Request, exc: Exception):
        logger.exception("Unhandled server error: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.on_event("startup")
    async def startup_checks():
        if not config.STRIPE_SECRET_KEY:
            logger.warning("STRIPE_SECRET_KEY is not set; payment intents are disabled")
        await ensure_indexes(app.state.db)
        logger.info("Startup checks completed env=%s db=%s", config.APP_ENV, config.DB_NAME)

    @app.on_event("shutdown")
    async def shutdown_db_client():
        if app.state.mongo_client is not None:
            app.state.mongo_client.close()

    app.include_router(session_router)
    app.include_router(user_router)
    app.include_router(admin_router)
    app.include_router(booking_router)
    app.include_router(study_router)
    app.include_router(payment_router)
    app.include_router(chat_router)
    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server:app", host="0.0.0.0", port=config.PORT)
