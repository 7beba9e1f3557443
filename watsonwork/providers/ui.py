"""
UI builders for messages and action-fulfillment dialogs.

generic() 生成的对话框以 Annotation 形式发送，card() 生成的卡片以 Attachment
形式发送。两者的区别在构造时就已确定，send_targeted_message 直接按类型分发。
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Annotation:
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.payload)


@dataclass(frozen=True)
class Attachment:
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.payload)


UiPayload = Union[Annotation, Attachment]


def button(id: str, title: str, secondary: bool = False) -> Dict[str, Any]:
    """Postback button for a generic dialog."""
    if id is None or title is None:
        raise ValueError(
            f"Button does not contain required information id '{id}', title '{title}'"
        )

    return {
        "postbackButton": {
            "title": title,
            "id": id,
            "style": "SECONDARY" if secondary else "PRIMARY",
        }
    }


def card_button(text: str, payload: Any = None, secondary: bool = False) -> Dict[str, Any]:
    """
    Button for a card dialog.

    Args:
        text: button label
        payload: data submitted when clicked; dicts/lists are JSON encoded
        secondary: render as a SECONDARY button
    """
    if text is None:
        raise ValueError(f"Button does not contain required information text '{text}'")

    if isinstance(payload, (dict, list)):
        payload = json.dumps(payload)

    return {
        "text": text,
        "payload": payload or "",
        "style": "SECONDARY" if secondary else "PRIMARY",
    }


def _card_date(date: Union[int, float, datetime, None]) -> Union[int, str]:
    if date is None:
        # 未指定时使用当前时间 (毫秒)
        return str(int(time.time() * 1000))
    if isinstance(date, datetime):
        logger.warning("Date should be an integer; attempting to convert")
        return int(date.timestamp() * 1000)
    return int(date)


def card(
    title: str,
    subtitle: str,
    text: str,
    buttons: Optional[List[Dict[str, Any]]] = None,
    date: Union[int, float, datetime, None] = None,
) -> Attachment:
    """
    Information card for an action-fulfillment dialog.

    Args:
        title: card title
        subtitle: card subtitle
        text: card body
        buttons: card_button() results
        date: epoch milliseconds or datetime; defaults to now
    """
    if title is None or subtitle is None or text is None:
        raise ValueError(
            f"Card does not contain required information title '{title}', "
            f"subtitle '{subtitle}', text '{text}'"
        )

    return Attachment(
        {
            "type": "CARD",
            "cardInput": {
                "type": "INFORMATION",
                "informationCardInput": {
                    "title": title,
                    "subtitle": subtitle,
                    "text": text,
                    "date": _card_date(date),
                    "buttons": buttons or [],
                },
            },
        }
    )


def generic(
    title: str, text: str, buttons: Optional[List[Dict[str, Any]]] = None
) -> Annotation:
    """Plain (non-card) action-fulfillment dialog."""
    return Annotation(
        {
            "genericAnnotation": {
                "title": title,
                "text": text,
                "buttons": buttons or [],
            }
        }
    )


def message(text: str, **options: Any) -> Dict[str, Any]:
    """
    Basic message annotation sent into a space.

    Extra keyword options (e.g. color, actor, title) are copied onto the
    annotation.
    """
    annotation = {
        "type": "generic",
        "version": "1",
        "text": text,
    }
    annotation.update(options)
    return annotation
