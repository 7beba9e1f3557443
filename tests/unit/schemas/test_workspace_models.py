from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from watsonwork.schemas.workspace import Credential, NlpInformation


def test_credential_ttl():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    credential = Credential(token="t", expires_at=now + timedelta(seconds=120))
    assert credential.ttl(now) == 120
    assert credential.ttl(now + timedelta(seconds=500)) == 0


def test_credential_without_expiry():
    assert Credential(token="t").ttl() is None


def test_credential_is_frozen():
    credential = Credential(token="t")
    with pytest.raises(ValidationError):
        credential.token = "other"


def test_nlp_information_defaults():
    info = NlpInformation()
    assert info.keywords == []
    assert info.docSentiment == {}
