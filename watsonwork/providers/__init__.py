"""
Watson Work Services 业务层

- ui: 消息注解与对话框构造
- workspace: WatsonWorkSDK 业务操作
"""

from . import ui
from .ui import Annotation, Attachment, UiPayload
from .workspace import WatsonWorkSDK

__all__ = ["ui", "Annotation", "Attachment", "UiPayload", "WatsonWorkSDK"]
