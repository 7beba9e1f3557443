"""
Watson Work Services client.

使用示例:
    from watsonwork import WatsonWorkSDK, set_level

    set_level("verbose")
    async with WatsonWorkSDK(app_id, app_secret) as sdk:
        await sdk.authenticate()
        await sdk.send_message(space_id, "Hello from Watson Work")
"""

from watsonwork.core.auth import TokenLifecycleManager, TokenState
from watsonwork.core.client import RequestDispatcher
from watsonwork.core.errors import (
    AcquisitionFailed,
    AcquisitionInProgress,
    InvalidCredentialFormat,
    InvalidFieldSpec,
    MissingProperty,
    TransportError,
    WatsonWorkError,
)
from watsonwork.core.log import configure_logging, set_level
from watsonwork.core.normalize import Found, Missing, PickResult, map_collection, pick
from watsonwork.providers import ui
from watsonwork.providers.workspace import WatsonWorkSDK

__all__ = [
    "TokenLifecycleManager",
    "TokenState",
    "RequestDispatcher",
    "AcquisitionFailed",
    "AcquisitionInProgress",
    "InvalidCredentialFormat",
    "InvalidFieldSpec",
    "MissingProperty",
    "TransportError",
    "WatsonWorkError",
    "configure_logging",
    "set_level",
    "Found",
    "Missing",
    "PickResult",
    "map_collection",
    "pick",
    "ui",
    "WatsonWorkSDK",
]
