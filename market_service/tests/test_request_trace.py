from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from common.middleware.request_trace import (
    REQUEST_ID_HEADER,
    RequestTraceMiddleware,
    mask_sensitive_body,
)


def test_mask_sensitive_body_hides_credentials() -> None:
    masked = json.loads(
        mask_sensitive_body('{"email": "a@example.com", "password": "pw", "otp": "123456"}')
    )

    assert masked == {"email": "a@example.com", "password": "***", "otp": "***"}


def test_mask_sensitive_body_leaves_non_json_untouched() -> None:
    assert mask_sensitive_body("password=pw") == "password=pw"
    assert mask_sensitive_body("[1, 2]") == "[1, 2]"


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_middleware_logs_masked_body_and_echoes_request_id() -> None:
    logger = logging.getLogger("request_trace.test")
    logger.setLevel(logging.INFO)
    handler = _ListHandler()
    logger.addHandler(handler)

    app = FastAPI()
    app.add_middleware(RequestTraceMiddleware, logger=logger)

    @app.post("/login")
    async def login(request: Request) -> dict[str, str]:
        body = await request.json()
        return {"email": body["email"]}

    client = TestClient(app)
    response = client.post(
        "/login",
        json={"email": "a@example.com", "password": "hunter2"},
        headers={REQUEST_ID_HEADER: "req-1"},
    )

    assert response.status_code == 200
    assert response.json() == {"email": "a@example.com"}
    assert response.headers[REQUEST_ID_HEADER] == "req-1"

    record = handler.records[-1]
    assert record.request_id == "req-1"  # type: ignore[attr-defined]
    assert "hunter2" not in record.body  # type: ignore[attr-defined]
    assert record.status == 200  # type: ignore[attr-defined]
    logger.removeHandler(handler)
