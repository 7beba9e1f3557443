from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Credential(BaseModel):
    """Bearer token plus the expiry decoded from its `exp` claim."""

    token: str
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    def ttl(self, now: Optional[datetime] = None) -> Optional[float]:
        """剩余有效期（秒），最小为 0；token 不带 exp 时返回 None"""
        if self.expires_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        return max(0.0, (self.expires_at - now).total_seconds())


class NlpInformation(BaseModel):
    # message-nlp-* 注解汇总，例如 message-nlp-keywords -> keywords
    keywords: List[Any] = Field(default_factory=list)
    entities: List[Any] = Field(default_factory=list)
    concepts: List[Any] = Field(default_factory=list)
    taxonomy: List[Any] = Field(default_factory=list)
    dates: List[Any] = Field(default_factory=list)
    docSentiment: Dict[str, Any] = Field(default_factory=dict)
    relations: List[Any] = Field(default_factory=list)

    model_config = {"extra": "ignore"}
