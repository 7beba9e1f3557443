"""GraphQL documents used by the SDK facade."""

from typing import Optional

from watsonwork.graphql.fields import FieldSpec, ensure_required_field, project

ADD_MEMBER = """mutation addMembers ($input: UpdateSpaceInput!) {
  updateSpace(input: $input) {
    memberIdsChanged
  }
}
"""

ADD_MESSAGE_FOCUS = """mutation AddMessageFocus($input: AddFocusInput!) {
  addMessageFocus(input: $input) {
    message {
      id
      annotations
    }
  }
}
"""

CREATE_SYNCHRONOUS_MESSAGE = """mutation createMessage($input: CreateMessageInput!) {
  createMessage(input: $input) {
    message {
      id
    }
  }
}
"""

CREATE_TARGETED_MESSAGE = """mutation CreateTargetedMessage($input: CreateTargetedMessageInput!) {
  createTargetedMessage(input: $input) {
    successful
  }
}
"""


# 以下查询均依赖 id 字段，调用时自动补齐


def get_me(fields: Optional[FieldSpec] = None) -> str:
    return f"""query GetMe {{
  me {{
    {project(ensure_required_field(fields))}
  }}
}}"""


def get_message(fields: Optional[FieldSpec] = None) -> str:
    return f"""query GetMessage($id: ID!) {{
  message(id: $id) {{
    {project(ensure_required_field(fields))}
  }}
}}"""


def get_space(fields: Optional[FieldSpec] = None) -> str:
    return f"""query GetSpace($id: ID!) {{
  space(id: $id) {{
    {project(ensure_required_field(fields))}
  }}
}}"""
