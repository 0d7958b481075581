from __future__ import annotations

import logging
import os
import threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError

from common.eventbus.kafka import close_kafka_event_bus
from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware
from common.mongo.client import close_client

from .api.health import router as health_router
from .api.v1 import api_router
from .config import (
    load_cors_origins,
    load_debug,
    load_mail_config,
    load_media_config,
    load_notification_consumer_enabled,
)
from .errors import MarketError, StorageUnavailableError, ValidationError
from .event_handlers import run_redemption_consumer
from .mailer import SmtpMailer
from .services.notification_service import close_mail_executor


logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": {"code": code, "message": message}},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:  # pragma: no cover - framework hook
    """앱 생명주기 관리.

    - NOTIFICATION_CONSUMER_ENABLED 이면 item.redeemed 컨슈머 스레드를 띄운다.
    - 종료 시 컨슈머를 멈추고, 남은 알림 메일을 보낸 뒤 Kafka producer 버퍼와 Mongo 연결을 정리한다.
    """
    logger.info("market-service starting up")

    stop_event = threading.Event()
    consumer_thread: threading.Thread | None = None
    if load_notification_consumer_enabled():
        consumer_thread = threading.Thread(
            target=run_redemption_consumer,
            args=(stop_event, SmtpMailer(load_mail_config())),
            daemon=True,
            name="redemption-consumer",
        )
        consumer_thread.start()
        logger.info("redemption consumer thread started")

    yield

    logger.info("market-service shutting down")
    stop_event.set()
    if consumer_thread is not None:
        consumer_thread.join(timeout=5.0)
    close_mail_executor()
    close_kafka_event_bus()
    close_client()
    logger.info("market-service stopped")


def register_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    @app.exception_handler(MarketError)
    async def handle_market_error(request: Request, exc: MarketError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.code, exc.message)
        return _error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = ", ".join(
            ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            for err in exc.errors()
        )
        return _error_response(
            ValidationError.status_code,
            ValidationError.code,
            f"invalid request: {fields}" if fields else ValidationError.default_message,
        )

    @app.exception_handler(PyMongoError)
    async def handle_storage_error(request: Request, exc: PyMongoError) -> JSONResponse:
        logger.error("mongo error: %s", exc)
        return _error_response(
            StorageUnavailableError.status_code,
            StorageUnavailableError.code,
            StorageUnavailableError.default_message,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if debug else MarketError.default_message
        return _error_response(500, MarketError.code, message)


def create_app() -> FastAPI:
    setup_logger()
    debug = load_debug()
    app = FastAPI(
        title="ReWear Market Service",
        description="포인트 기반 의류 교환 마켓",
        version="0.1.0",
        lifespan=lifespan,
        debug=False,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=load_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, debug=debug)

    media = load_media_config()
    app.mount(
        media.public_prefix,
        StaticFiles(directory=media.upload_dir, check_dir=False),
        name="uploads",
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(health_router, prefix="/api/v1", tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def main() -> None:
    import uvicorn

    port = int(os.getenv("MARKET_SERVICE_PORT", "8004"))
    uvicorn.run(
        "market_service.app.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
