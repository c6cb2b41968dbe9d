"""Tests for the request/response client and the Gemini wrapper helpers."""

import base64
from types import SimpleNamespace

import pytest

from bizchat.models.core import Attachment, GroundingLink, KnowledgeEntry, Message, ModelTier, Role
from bizchat.services import response_client as rc
from bizchat.services.response_client import ResponseClient, ResponseOutcome
from bizchat.utils.gemini_llm import extract_grounding_links

from .conftest import FakeLLM, make_gemini_config


def user_message(text, attachments=()):
    return Message(id="u1", role=Role.USER, content=text, timestamp=1, attachments=tuple(attachments))


class TestMissingCredential:
    @pytest.mark.parametrize("api_key", [None, "", "undefined", "  "])
    def test_returns_instructions_without_calling(self, api_key):
        llm = FakeLLM()
        client = ResponseClient(config=make_gemini_config(api_key), llm_factory=llm.factory)
        response = client.generate("hi", [user_message("hi")])
        assert response.text == rc.MISSING_KEY_TEXT
        assert response.grounding_links == ()
        assert response.outcome is ResponseOutcome.MISSING_CREDENTIAL
        assert llm.calls == []
        assert llm.api_keys == []


class TestRequestBuilding:
    def test_single_call_with_request_fields(self, client, fake_llm):
        knowledge = (KnowledgeEntry(id="user_1", content="Receipts are mandatory", timestamp=1), )
        response = client.generate("hi", [user_message("hi")], knowledge, model=ModelTier.PRO, use_search=True)

        assert len(fake_llm.calls) == 1
        call = fake_llm.calls[0]
        assert call["model"] == "gemini-3-pro-preview"
        assert call["temperature"] == 0.1
        assert call["use_search"] is True
        assert "1. Receipts are mandatory" in call["system_instruction"]
        assert call["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]

        assert response.ok
        assert response.text == "**Done** see `form-7`"
        assert response.grounding_links == (GroundingLink(uri="https://example.com/policy", title="Policy"), )

    def test_flash_is_default(self, client, fake_llm):
        client.generate("hi", [user_message("hi")])
        assert fake_llm.calls[0]["model"] == "gemini-3-flash-preview"
        assert fake_llm.calls[0]["use_search"] is False

    def test_attachments_precede_text(self):
        payload = b"%PDF-1.4"
        attachment = Attachment(name="a.pdf", mime_type="application/pdf", data=base64.b64encode(payload).decode())
        contents = rc.build_contents([user_message("read this", [attachment])])
        assert contents[0]["parts"] == [
            {"inline_data": {"mime_type": "application/pdf", "data": payload}},
            {"text": "read this"},
        ]

    def test_roles_mapped_and_system_skipped(self):
        history = [
            Message(id="1", role=Role.SYSTEM, content="note", timestamp=1),
            Message(id="2", role=Role.USER, content="q", timestamp=2),
            Message(id="3", role=Role.ASSISTANT, content="a", timestamp=3),
            Message(id="4", role=Role.USER, content="q2", timestamp=4),
        ]
        assert [c["role"] for c in rc.build_contents(history)] == ["user", "model", "user"]

    def test_system_instruction_without_knowledge(self):
        assert rc.build_system_instruction(()) == rc.SYSTEM_PERSONA


class TestResponseNormalization:
    def test_empty_text_uses_placeholder(self):
        llm = FakeLLM(text="")
        client = ResponseClient(config=make_gemini_config(), llm_factory=llm.factory)
        assert client.generate("hi", [user_message("hi")]).text == rc.EMPTY_RESPONSE_TEXT

    def test_invalid_key_error(self):
        llm = FakeLLM(error="400 INVALID_ARGUMENT. API key not valid. Please pass a valid API key.")
        client = ResponseClient(config=make_gemini_config(), llm_factory=llm.factory)
        response = client.generate("hi", [user_message("hi")])
        assert response.text == rc.INVALID_KEY_TEXT
        assert response.outcome is ResponseOutcome.INVALID_CREDENTIAL

    def test_other_errors_become_apology(self):
        llm = FakeLLM(error="503 UNAVAILABLE")
        client = ResponseClient(config=make_gemini_config(), llm_factory=llm.factory)
        response = client.generate("hi", [user_message("hi")])
        assert response.text == rc.APOLOGY_TEXT
        assert response.outcome is ResponseOutcome.FAILED
        assert not response.ok
        assert len(llm.calls) == 1

    def test_factory_failure_is_normalized(self):
        def broken_factory(api_key):
            raise RuntimeError("boom")

        client = ResponseClient(config=make_gemini_config(), llm_factory=broken_factory)
        assert client.generate("hi", [user_message("hi")]).outcome is ResponseOutcome.FAILED


class TestGroundingLinks:
    def test_web_chunks_only(self):
        response = SimpleNamespace(candidates=[
            SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=[
                SimpleNamespace(web=SimpleNamespace(uri="https://a.example", title="A")),
                SimpleNamespace(web=None),
                SimpleNamespace(web=SimpleNamespace(uri="https://b.example", title=None)),
            ]))
        ])
        assert extract_grounding_links(response) == [
            GroundingLink(uri="https://a.example", title="A"),
            GroundingLink(uri="https://b.example", title="https://b.example"),
        ]

    def test_no_candidates(self):
        assert extract_grounding_links(SimpleNamespace(candidates=None)) == []

    def test_no_metadata(self):
        response = SimpleNamespace(candidates=[SimpleNamespace(grounding_metadata=None)])
        assert extract_grounding_links(response) == []
