"""이벤트 핸들러 패키지."""

from .redemption_handler import run_redemption_consumer

__all__ = ["run_redemption_consumer"]
