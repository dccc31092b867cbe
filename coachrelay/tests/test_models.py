import pytest
from pydantic import ValidationError

from coachrelay.core.models import ChatRecord, EndpointCandidate, RelayPayload, fallback_candidate
from coachrelay.config.settings import settings

USER_ID = "6f1c2b1e-3d4a-4c5b-9e8f-0a1b2c3d4e5f"


def test_payload_trims_and_lowercases_ids():
    payload = RelayPayload.model_validate(
        {
            "message": "  Plan my week  ",
            "dateCode": " W12 ",
            "user_id": USER_ID.upper(),
            "chat_id": f" {USER_ID.upper()} ",
            "unexpected": "dropped",
        }
    )
    assert payload.message == "Plan my week"
    assert payload.dateCode == "W12"
    assert payload.user_id == USER_ID
    assert payload.chat_id == USER_ID
    assert not hasattr(payload, "unexpected")


def test_payload_message_boundaries():
    RelayPayload.model_validate({"message": "x" * 4000, "user_id": USER_ID})
    with pytest.raises(ValidationError):
        RelayPayload.model_validate({"message": "x" * 4001, "user_id": USER_ID})


def test_payload_rejects_unhyphenated_uuid():
    with pytest.raises(ValidationError):
        RelayPayload.model_validate({"message": "hi", "user_id": USER_ID.replace("-", "")})


def test_payload_rejects_null_user_id():
    with pytest.raises(ValidationError):
        RelayPayload.model_validate({"message": "hi", "user_id": None})


def test_upstream_body_defaults_prompt():
    payload = RelayPayload.model_validate({"message": "hi", "user_id": USER_ID})
    body = payload.upstream_body("Coach prompt")
    assert body == {"message": "hi", "system_prompt": "Coach prompt", "chat_id": None, "user_id": USER_ID}


def test_endpoint_candidate_stringifies_id_and_ignores_extra_columns():
    cand = EndpointCandidate.model_validate(
        {"id": 7, "name": "n8n", "url": "https://hooks.example.com/a", "priority": 2, "created_at": "2024-01-01"}
    )
    assert cand.id == "7"
    assert cand.is_active is True


def test_chat_record_owner_may_be_missing():
    assert ChatRecord.model_validate({"id": "abc"}).user_id is None


def test_fallback_candidate_uses_settings():
    cand = fallback_candidate()
    assert cand.id == "fallback"
    assert cand.url == settings.fallback_webhook_url
    assert cand.priority == settings.fallback_webhook_priority
