"""
Response normalization helpers.

pick() 从响应信封中取出指定属性，缺失时不抛异常而是返回 Missing，
调用方必须显式处理两种结果::

    result = pick("message", response)
    if result:
        message = result.value

map_collection() 对集合属性逐项做转换，例如把 annotations 里的 JSON 字符串解析为 dict。
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Union

from watsonwork.core.errors import MissingProperty

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
    value: Any

    def __bool__(self) -> bool:
        return True

    def unwrap(self) -> Any:
        return self.value

    def value_or(self, default: Any = None) -> Any:
        return self.value


@dataclass(frozen=True)
class Missing:
    property: str

    def __bool__(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise MissingProperty(self.property)

    def value_or(self, default: Any = None) -> Any:
        return default


PickResult = Union[Found, Missing]


def jsonify(value: Any) -> Any:
    """Decode a JSON string; non-string values pass through unchanged."""
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return value


def _coerce(property_name: str, response: Any) -> Any:
    # 防御性处理: 服务端有时返回原始字符串
    if isinstance(response, (str, bytes, bytearray)):
        logger.warning("Can not find '%s'; converting to JSON", property_name)
        return json.loads(response)
    return response


def pick(property_name: str, response: Any) -> PickResult:
    """
    Extract a named property from a response envelope.

    If response is {"space": {"displayName": "foo"}}, pick("space", response)
    returns Found({"displayName": "foo"}).

    Args:
        property_name: top-level key to extract
        response: decoded dict, raw JSON text, or the result of a previous pick

    Returns:
        Found(value) when present, Missing(property_name) otherwise
    """
    if isinstance(response, Missing):
        return response
    if isinstance(response, Found):
        response = response.value

    try:
        response = _coerce(property_name, response)
    except ValueError as e:
        logger.error("Response is not valid JSON while picking '%s': %s", property_name, e)
        return Missing(property_name)

    if not isinstance(response, dict) or property_name not in response:
        logger.warning("No '%s' field in %s", property_name, _preview(response))
        return Missing(property_name)

    return Found(response[property_name])


def map_collection(
    property_name: str, fn: Callable[[Any], Any], response: Any
) -> Any:
    """
    Apply fn to every element of a collection property, in place.

    A Found/Missing wrapper is accepted and the same kind of wrapper is
    returned, so this composes directly with pick().
    """
    if isinstance(response, Missing):
        return response
    if isinstance(response, Found):
        return Found(map_collection(property_name, fn, response.value))

    collection = response.get(property_name) if isinstance(response, dict) else None
    if collection is None:
        logger.warning("Map requested on missing property '%s'", property_name)
        return response

    if not isinstance(collection, list):
        logger.warning(
            "Map requested on non-collection property '%s' (%s)",
            property_name,
            type(collection).__name__,
        )
        return response

    response[property_name] = [fn(item) for item in collection]
    return response


def _preview(response: Any, limit: int = 200) -> str:
    try:
        text = json.dumps(response)
    except (TypeError, ValueError):
        text = repr(response)
    return text[:limit]
