"""
Unit tests for the session model and wire models in social.graze.xrpc.

Tests cover the identical field mapping of both session constructors, token
validation, immutability and the persisted JSON shape.
"""

import pytest
from pydantic import ValidationError

from social.graze.xrpc.lexicon import (
    ApiError,
    CreateSessionOutput,
    Record,
    RecordList,
    RefreshSessionOutput,
    parse_api_error,
)
from social.graze.xrpc.session import Jwt, Session

from tests.test_helpers import session_body


class TestSessionConstruction:
    """Both response kinds map to a session the same way."""

    @pytest.mark.parametrize("output_type", [CreateSessionOutput, RefreshSessionOutput])
    def test_fields_copied_verbatim(self, output_type):
        output = output_type.model_validate(session_body("acc", "ref"))
        session = (
            Session.from_create_session(output)
            if output_type is CreateSessionOutput
            else Session.from_refresh_session(output)
        )

        assert session.did == "did:plc:testaccount123"
        assert session.handle == "alice.test"
        assert session.jwt.access == "acc"
        assert session.jwt.refresh == "ref"

    def test_create_and_refresh_produce_equal_sessions(self):
        body = session_body("acc", "ref", email="alice@example.com", active=True)
        created = Session.from_create_session(CreateSessionOutput.model_validate(body))
        refreshed = Session.from_refresh_session(RefreshSessionOutput.model_validate(body))
        assert created == refreshed

    def test_unknown_response_fields_ignored(self):
        body = session_body("acc", "ref", didDoc={"id": "did:plc:testaccount123"})
        output = CreateSessionOutput.model_validate(body)
        assert output.access_jwt == "acc"

    def test_missing_token_is_rejected(self):
        body = session_body("acc", "ref")
        del body["refreshJwt"]
        with pytest.raises(ValidationError):
            CreateSessionOutput.model_validate(body)

    @pytest.mark.parametrize("access,refresh", [("", "ref"), ("acc", "")])
    def test_empty_tokens_are_rejected(self, access, refresh):
        output = CreateSessionOutput.model_validate(session_body(access, refresh))
        with pytest.raises(ValidationError):
            Session.from_create_session(output)


class TestSessionImmutability:
    def test_session_is_frozen(self):
        session = Session(did="did:plc:x", handle="x.test", jwt=Jwt(access="a", refresh="r"))
        with pytest.raises(ValidationError):
            session.handle = "y.test"  # type: ignore[misc]

    def test_jwt_is_frozen(self):
        jwt = Jwt(access="a", refresh="r")
        with pytest.raises(ValidationError):
            jwt.access = "b"  # type: ignore[misc]

    def test_persisted_json_shape(self):
        session = Session(did="did:plc:x", handle="x.test", jwt=Jwt(access="a", refresh="r"))
        assert session.model_dump() == {
            "did": "did:plc:x",
            "handle": "x.test",
            "jwt": {"access": "a", "refresh": "r"},
        }


class TestWireModels:
    def test_api_error_message_optional(self):
        error = ApiError.model_validate({"error": "InvalidRequest"})
        assert error.code == "InvalidRequest"
        assert error.message == ""

    def test_parse_api_error_from_text_or_decoded_body(self):
        text = '{"error": "ExpiredToken", "message": "Token has expired"}'
        assert parse_api_error(text).code == "ExpiredToken"
        assert parse_api_error(text.encode()).code == "ExpiredToken"
        assert parse_api_error({"error": "ExpiredToken"}).code == "ExpiredToken"

    def test_parse_api_error_rejects_other_bodies(self):
        assert parse_api_error(b"") is None
        assert parse_api_error(None) is None
        assert parse_api_error([{"error": "ExpiredToken"}]) is None
        assert parse_api_error({"message": "no code"}) is None

    def test_record_envelope_generic_value(self):
        record = Record[dict].model_validate(
            {"uri": "at://did:plc:x/app.example.post/1", "cid": "bafy", "value": {"text": "hi"}}
        )
        assert record.value == {"text": "hi"}

    def test_record_list_preserves_order(self):
        records = RecordList[dict].model_validate(
            {
                "records": [
                    {"uri": "at://x/c/2", "cid": "b", "value": {"n": 2}},
                    {"uri": "at://x/c/1", "cid": "a", "value": {"n": 1}},
                ]
            }
        )
        assert [r.value["n"] for r in records.records] == [2, 1]
        assert records.cursor is None
