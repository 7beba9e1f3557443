"""
WatsonWorkSDK - Watson Work Services 业务操作封装

每个方法只负责拼装 GraphQL / REST 请求，认证、分发与响应整形交给 core 层:
- TokenLifecycleManager: token 获取与续期
- RequestDispatcher: 注入 Authorization 并发送请求
- pick / map_collection: 解包与后处理响应

使用示例:
    async with WatsonWorkSDK(app_id, app_secret) as sdk:
        await sdk.authenticate()
        await sdk.send_message(space_id, "Hello")
        result = await sdk.get_space(space_id, ["id", "title"])
        if result:
            print(result.value["title"])
"""

import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from watsonwork.core.auth import TokenLifecycleManager
from watsonwork.core.client import RequestDispatcher, ResponseEnvelope
from watsonwork.core.log import verbose
from watsonwork.core.normalize import PickResult, jsonify, map_collection, pick
from watsonwork.graphql import queries
from watsonwork.graphql.fields import FieldSpec
from watsonwork.providers import ui
from watsonwork.providers.ui import Annotation, Attachment, UiPayload
from watsonwork.schemas.workspace import NlpInformation

logger = logging.getLogger(__name__)

# 消息焦点的固定置信度
FOCUS_CONFIDENCE = 0.99


class WatsonWorkSDK:
    """
    A Watson Work Services app.

    Args:
        app_id: application id (36 characters)
        app_secret: application secret (28 characters)
        token: pre-issued JWT; skips OAuth acquisition when given
        base_url: API base URL, defaults to settings.WATSONWORK_BASE_URL
    """

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_secret: Optional[str] = None,
        token: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        auth: Optional[TokenLifecycleManager] = None,
        client: Optional[RequestDispatcher] = None,
    ):
        self.auth = auth or TokenLifecycleManager(
            app_id, app_secret, token, base_url=base_url
        )
        self.client = client or RequestDispatcher(
            self.auth.accessor(), base_url=base_url
        )

    @property
    def app_id(self) -> Optional[str]:
        return self.auth.app_id

    async def authenticate(self) -> str:
        """
        Obtain the app's JWT and keep it refreshed in the background.

        Returns:
            The first access token.

        Raises:
            InvalidCredentialFormat: app id / secret has the wrong shape
            AcquisitionFailed: the token endpoint kept failing
        """
        credential = await self.auth.start()
        return credential.token

    async def close(self) -> None:
        await self.auth.stop()
        await self.client.close()

    async def __aenter__(self) -> "WatsonWorkSDK":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def send_graphql(self, graphql: Union[str, Dict[str, Any]]) -> PickResult:
        """Send GraphQL (raw string or {query, variables}) and pick 'data'."""
        response = await self.client.send_graphql(graphql)
        if isinstance(response, dict) and response.get("errors"):
            logger.warning("GraphQL returned errors: %s", response["errors"])
        return pick("data", response)

    async def send_request(
        self,
        route: str,
        method: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> ResponseEnvelope:
        return await self.client.dispatch(route, method, headers, body)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_configuration_data(self, configuration_token: str) -> ResponseEnvelope:
        """Retrieve user configuration data for a configuration token."""
        return await self.client.dispatch(
            f"v1/apps/{self.app_id}/configurationData/{configuration_token}", "GET"
        )

    async def get_me(self, fields: Optional[FieldSpec] = None) -> PickResult:
        """Information about the authenticated person or app."""
        data = await self.send_graphql({"query": queries.get_me(fields)})
        return pick("me", data)

    async def get_message(
        self, message_id: str, fields: Optional[FieldSpec] = None
    ) -> PickResult:
        """
        Information about a message.

        annotations 字段在服务端以 JSON 字符串数组返回，这里解析为 dict。
        """
        data = await self.send_graphql(
            {"query": queries.get_message(fields), "variables": {"id": message_id}}
        )
        return map_collection("annotations", jsonify, pick("message", data))

    async def get_space(
        self, space_id: str, fields: Optional[FieldSpec] = None
    ) -> PickResult:
        """Information about a space such as membership."""
        data = await self.send_graphql(
            {"query": queries.get_space(fields), "variables": {"id": space_id}}
        )
        return pick("space", data)

    async def get_file(self, file_id: str) -> bytes:
        """
        Download a file.

        先查询文件元数据，再从 redirect_download 地址下载内容。
        """
        metadata = await self.client.dispatch(f"files/api/v1/files/file/{file_id}", "GET")
        metadata = jsonify(metadata)
        try:
            download_url = metadata["entries"][0]["urls"]["redirect_download"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("No download url for file '%s': %s", file_id, e)
            raise

        response = await self.client.dispatch_raw(download_url, "GET")
        return response.content

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def send_message(
        self, space_id: str, content: Union[str, Dict[str, Any], List[Dict[str, Any]]]
    ) -> ResponseEnvelope:
        """
        Send a message into a space.

        Args:
            space_id: target space id
            content: text (wrapped in a generic annotation), a single
                annotation dict, or a list of annotations
        """
        verbose(logger, "Sending message to conversation '%s'", space_id)

        if isinstance(content, str):
            annotations = [ui.message(content)]
        elif isinstance(content, list):
            annotations = content
        elif isinstance(content, dict):
            annotations = [content]
        else:
            logger.error("Error sending message of type '%s'", type(content).__name__)
            raise TypeError(f"Unsupported message content type: {type(content).__name__}")

        body = {
            "type": "appMessage",
            "version": "1",
            "annotations": annotations,
        }
        return await self.client.dispatch(f"v1/spaces/{space_id}/messages", "POST", body=body)

    async def send_synchronous_message(self, space_id: str, content: str) -> PickResult:
        """Send a text message through GraphQL createMessage."""
        return await self.send_graphql(
            {
                "query": queries.CREATE_SYNCHRONOUS_MESSAGE,
                "variables": {
                    "input": {"conversationId": space_id, "content": content}
                },
            }
        )

    async def add_member(self, space_id: str, member_ids: Sequence[str]) -> PickResult:
        """Add members to a space."""
        data = await self.send_graphql(
            {
                "query": queries.ADD_MEMBER,
                "variables": {
                    "input": {
                        "id": space_id,
                        "members": list(member_ids),
                        "memberOperation": "ADD",
                    }
                },
            }
        )
        return pick("updateSpace", data)

    async def add_message_focus(
        self,
        message: Mapping[str, Any],
        phrase: str,
        lens: str,
        category: str,
        actions: Sequence[str],
        payload: Any = None,
        hidden: bool = False,
    ) -> PickResult:
        """
        Add a focus to a message.

        The message must carry content: either a generic annotation (app
        created) or a content field (user created).

        Args:
            message: message from get_message() or a webhook event
            phrase: phrase to focus; must occur in the message text
            lens: lens name
            category: lens category
            actions: actions that can be taken, e.g. ["commit-code"]
            payload: data persisted in the focus (JSON encoded)
            hidden: hide from Moments
        """
        message_id = message.get("id") or message.get("messageId")

        # 应用发送的消息正文在 generic 注解里，用户消息在 content 字段
        annotations = message.get("annotations") or []
        first = annotations[0] if annotations else None
        if isinstance(first, dict) and first.get("type") == "generic":
            text = first.get("text", "")
        else:
            text = message.get("content") or ""

        start = text.find(phrase)
        if start < 0:
            logger.warning("Phrase '%s' not found in message '%s'", phrase, message_id)

        verbose(logger, "Adding message focus to message '%s'", message_id)

        return await self.send_graphql(
            {
                "query": queries.ADD_MESSAGE_FOCUS,
                "variables": {
                    "input": {
                        "messageId": message_id,
                        "messageFocus": {
                            "phrase": phrase,
                            "lens": lens,
                            "category": category,
                            "actions": list(actions),
                            "confidence": FOCUS_CONFIDENCE,
                            "payload": json.dumps(payload) if payload else "",
                            "start": start,
                            "end": start + len(phrase),
                            "version": 1,
                            "hidden": bool(hidden),
                        },
                    }
                },
            }
        )

    async def send_targeted_message(
        self,
        user_id: str,
        annotation: Mapping[str, Any],
        items: Union[UiPayload, Sequence[UiPayload]],
    ) -> PickResult:
        """
        Send a targeted message (action fulfillment) to a user.

        Args:
            user_id: target user id
            annotation: the annotation from the 'actionSelected' event
            items: generic() dialogs or card() attachments, not mixed

        Raises:
            ValueError: items mix annotations and attachments
        """
        verbose(logger, "Sending targeted message to user %s", user_id)

        if isinstance(items, (Annotation, Attachment)):
            items = [items]
        items = list(items)

        payload: Dict[str, Any] = {
            "conversationId": annotation.get("conversationId"),
            "targetUserId": user_id,
            "targetDialogId": annotation.get("targetDialogId"),
        }

        if not items:
            logger.error("Targeted message has no annotations or attachments for %s", user_id)
        elif all(isinstance(item, Annotation) for item in items):
            payload["annotations"] = [item.to_dict() for item in items]
        elif all(isinstance(item, Attachment) for item in items):
            payload["attachments"] = [item.to_dict() for item in items]
        else:
            raise ValueError("Targeted message items must be all annotations or all attachments")

        return await self.send_graphql(
            {"query": queries.CREATE_TARGETED_MESSAGE, "variables": {"input": payload}}
        )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def send_file(
        self,
        space_id: str,
        file: Union[str, Path],
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> ResponseEnvelope:
        """
        Upload a file into a space.

        Image dimensions are sent only when both width and height are given.
        """
        path = Path(file)
        verbose(logger, "Sending file '%s' to conversation '%s'", path, space_id)

        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        params = {"dim": f"{width}x{height}"} if width and height else None

        with path.open("rb") as fh:
            return await self.client.dispatch(
                f"v1/spaces/{space_id}/files",
                "POST",
                params=params,
                files={"file": (path.name, fh, mime_type)},
            )

    async def upload_photo(self, file: Union[str, Path]) -> ResponseEnvelope:
        """Upload a JPEG photo to the app's profile."""
        path = Path(file)
        with path.open("rb") as fh:
            return await self.client.dispatch(
                "photos/", "POST", files={"file": (path.name, fh, "image/jpeg")}
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def extract_information(message: Mapping[str, Any]) -> NlpInformation:
        """
        Collect the NLP annotation data (keywords, entities, concepts...)
        of a message whose annotations are already decoded.
        """
        info: Dict[str, Any] = {}
        annotations = message.get("annotations")

        if annotations is None:
            logger.warning("Information extraction on message with undefined annotations")
            return NlpInformation()

        fields = NlpInformation.model_fields
        for annotation in annotations:
            annotation_type = annotation.get("type", "")
            # 'message-nlp-keywords' -> 'keywords'
            shortened = annotation_type.rsplit("-", 1)[-1]
            # message-focus 等非 NLP 注解忽略
            if shortened in fields and shortened in annotation:
                info[shortened] = annotation[shortened]

        return NlpInformation(**info)

