import json
import logging
import os
import sys


# extra 로 넘어오면 JSON 레코드에 그대로 실어 보내는 필드 목록
EXTRA_LOG_KEYS: tuple[str, ...] = (
    "request_id",
    "span_id",
    "method",
    "path",
    "query_params",
    "status",
    "body",
    "duration",
    "user_id",
    "item_id",
    "event_id",
)


def setup_logger(name: str = "rewear", level: str | None = None) -> logging.Logger:
    """서비스 로거와 루트 로거에 JSON 콘솔 핸들러를 붙인다.

    Args:
        name: 로거 이름. SERVICE_NAME 환경변수가 있으면 그 값을 우선한다.
        level: 로그 레벨. None 이면 LOG_LEVEL 환경변수(기본 INFO)를 사용한다.

    Returns:
        설정된 서비스 로거
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")

    log_level = getattr(logging, level.upper(), logging.INFO)

    service_name = os.getenv("SERVICE_NAME", name)
    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)

    # create_app 이 여러 번 호출돼도 핸들러가 중복되지 않게 한다.
    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JsonFormatter(service_name=service_name))
    logger.addHandler(handler)
    logger.propagate = False

    # 모듈 로거(getLogger(__name__))는 루트로 전파되므로 루트에도 같은 핸들러를 둔다.
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    return logger


class JsonFormatter(logging.Formatter):
    """한 줄에 한 레코드씩 JSON 으로 출력하는 포맷터.

    - datetime, level, logger, message 는 항상 포함한다.
    - EXTRA_LOG_KEYS 에 해당하는 extra 값이 있으면 함께 싣는다.
    - 예외 정보가 있으면 exc_info 필드에 트레이스백 문자열을 넣는다.
    """

    def __init__(self, service_name: str | None = None) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S")
        self._service_name = service_name

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_record: dict[str, object] = {
            "datetime": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in EXTRA_LOG_KEYS:
            if hasattr(record, key):
                log_record[key] = getattr(record, key)

        service_name = getattr(record, "service_name", None) or self._service_name
        if service_name:
            log_record["service_name"] = service_name

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)
