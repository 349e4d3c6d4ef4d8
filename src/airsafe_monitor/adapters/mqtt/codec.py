import json
import logging
import math
import re
from typing import Any, List, Tuple, Union

from airsafe_monitor.domain.models import STRUCTURED_KEYS, SensorKey

logger = logging.getLogger(__name__)

NUMERIC_LITERAL = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def topics_for(namespace: str) -> List[str]:
    """One topic per sensor key plus the namespace wildcard."""
    namespace = namespace.rstrip("/")
    return [f"{namespace}/{key.value}" for key in SensorKey] + [f"{namespace}/#"]


def sensor_key_for_topic(topic: str) -> str:
    return topic.rstrip("/").split("/")[-1]


def parse_scalar(payload: str) -> Union[int, float, str]:
    """Numeric literal to int/float, anything else stays the raw string."""
    text = payload.strip()
    if not NUMERIC_LITERAL.fullmatch(text):
        return payload
    if not any(c in text for c in ".eE"):
        return int(text)
    number = float(text)
    if not math.isfinite(number):
        return payload
    return number


def decode_message(topic: str, payload: str) -> Tuple[str, Any, bool]:
    """Decode an inbound message into ``(key, value, structured)``.

    Structured keys carry JSON; a document that fails to parse is returned as
    the raw string and flagged as not structured.
    """
    key = sensor_key_for_topic(topic)
    if key in STRUCTURED_KEYS:
        try:
            return key, json.loads(payload), True
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON on %s, keeping raw payload: %s", topic, e)
            return key, payload, False
    return key, parse_scalar(payload), False
