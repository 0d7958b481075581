from __future__ import annotations

import json
import logging

from common.logger import JsonFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="market_service.app.services.redemption_service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="item redeemed for %d points",
        args=(20,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_known_extra_keys_only() -> None:
    formatter = JsonFormatter(service_name="market-service")

    line = formatter.format(_record(item_id="i-1", user_id="u-1", secret="x"))
    payload = json.loads(line)

    assert payload["message"] == "item redeemed for 20 points"
    assert payload["level"] == "INFO"
    assert payload["service_name"] == "market-service"
    assert payload["item_id"] == "i-1"
    assert payload["user_id"] == "u-1"
    assert "secret" not in payload
