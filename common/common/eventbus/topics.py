from __future__ import annotations

from .core import Topic


TOPIC_ITEM_REDEEMED = Topic("rewear.item.redeemed")
