import json
import logging
import time
import uuid
from urllib.parse import parse_qs

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response


REQUEST_ID_HEADER = "X-Request-Id"
SPAN_ID_HEADER = "X-Span-Id"

# 헬스체크처럼 노이즈만 되는 경로는 로그에서 뺀다.
IGNORED_LOG_PATHS: set[str] = {"/health", "/api/v1/health"}

# 로그에 원문을 남기면 안 되는 바디 필드
SENSITIVE_BODY_KEYS: frozenset[str] = frozenset({"password", "otp", "token"})
MASKED_VALUE = "***"
MAX_LOGGED_BODY_LENGTH = 1024


def mask_sensitive_body(text: str) -> str:
    """JSON 바디에서 비밀번호/OTP/토큰 값을 가린 문자열을 돌려준다.

    - JSON 객체가 아니면 원문을 그대로 돌려준다.
    - 중첩 객체까지는 따라가지 않는다. 인증 API 바디는 평평한 구조다.
    """

    try:
        parsed = json.loads(text)
    except ValueError:
        return text
    if not isinstance(parsed, dict):
        return text

    masked = {
        key: (MASKED_VALUE if key.lower() in SENSITIVE_BODY_KEYS else value)
        for key, value in parsed.items()
    }
    return json.dumps(masked, ensure_ascii=False)


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """Request/Span ID 를 부여하고 요청당 한 줄의 완료 로그를 남기는 미들웨어.

    - X-Request-Id 가 없으면 새로 만들고, X-Span-Id 가 없으면 "0" 을 쓴다.
    - request.state 에 request_id, span_id 를 저장하고 응답 헤더에도 돌려준다.
    - 변경 요청의 JSON 바디는 민감 필드를 가린 뒤 로그에 싣는다.
      multipart 업로드는 버퍼링하지 않고 "<multipart>" 로만 표시한다.
    """

    def __init__(self, app, logger: logging.Logger | None = None) -> None:  # type: ignore[override]
        super().__init__(app)
        self._logger = logger or logging.getLogger("request_trace")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id, span_id = self._extract_trace_ids(request)
        request.state.request_id = request_id
        request.state.span_id = span_id
        request.state.request_body = await self._read_body_snippet(request)

        should_log = request.url.path not in IGNORED_LOG_PATHS
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            if should_log:
                self._logger.exception(
                    "request failed",
                    extra=self._build_log_extra(
                        request,
                        request_id,
                        span_id,
                        duration=time.monotonic() - start,
                    ),
                )
            raise

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        response.headers.setdefault(SPAN_ID_HEADER, span_id)

        if should_log:
            self._logger.info(
                "completed request",
                extra=self._build_log_extra(
                    request,
                    request_id,
                    span_id,
                    status=response.status_code,
                    duration=time.monotonic() - start,
                ),
            )

        return response

    def _extract_trace_ids(self, request: Request) -> tuple[str, str]:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        span_id = request.headers.get(SPAN_ID_HEADER) or "0"
        return request_id, span_id

    async def _read_body_snippet(self, request: Request) -> str | None:
        if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
            return None

        content_type = request.headers.get("content-type", "")
        if content_type.startswith("multipart/"):
            return "<multipart>"

        try:
            body_bytes = await request.body()
        except Exception:  # noqa: BLE001
            return None
        if not body_bytes:
            return None

        text = mask_sensitive_body(body_bytes.decode("utf-8", errors="replace"))
        return text[:MAX_LOGGED_BODY_LENGTH]

    def _build_log_extra(
        self,
        request: Request,
        request_id: str,
        span_id: str,
        status: int | None = None,
        duration: float | None = None,
    ) -> dict[str, object]:
        extra: dict[str, object] = {
            "request_id": request_id,
            "span_id": span_id,
            "method": request.method,
            "path": request.url.path,
        }

        query = request.url.query
        if query:
            parsed = parse_qs(query, keep_blank_values=True)
            if parsed:
                extra["query_params"] = {
                    key: values[0] if len(values) == 1 else values
                    for key, values in parsed.items()
                }

        body = getattr(request.state, "request_body", None)
        if body:
            extra["body"] = body

        # 인증 의존성이 호출자를 확인했으면 user_id 를 남긴다.
        user_id = getattr(request.state, "user_id", None)
        if user_id:
            extra["user_id"] = user_id

        if status is not None:
            extra["status"] = status
        if duration is not None:
            extra["duration"] = f"{duration * 1000:.3f}ms"

        return extra
