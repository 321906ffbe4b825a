import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from zelote.core.config import settings
from zelote.services import mailer


@pytest.fixture()
def resend(monkeypatch):
    """Route mailer traffic to an in-process transport and collect the requests."""

    sent = []
    status = {"code": 200}

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        if status["code"] >= 400:
            return httpx.Response(status["code"], json={"message": "rejected"})
        if status.get("plain"):
            return httpx.Response(200, text="queued")
        return httpx.Response(200, json={"id": "msg_123"})

    real_client = httpx.AsyncClient

    def _client(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(mailer.httpx, "AsyncClient", _client)
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(settings, "MAIL_REDIRECTS", {"ana@sj.pro.br": "inbox@example.org"})
    return SimpleNamespace(sent=sent, status=status)


def _reservation(**overrides):
    data = dict(
        teacher_email="ana@sj.pro.br",
        teacher_name="Ana Souza",
        date="2026-05-04",
        time_slot="08h00",
        quantity_requested=2,
        classroom="7A",
        justification="Research project <draft>",
        needs_tv=True,
        needs_sound=False,
        needs_mic=True,
        mic_quantity=2,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def test_subject_and_equipment():
    assert mailer.reservation_subject("Short") == "Reservation confirmed - Short"
    long_subject = mailer.reservation_subject("x" * 80)
    assert long_subject.endswith("x" * 50 + "...")
    assert mailer.equipment_list(True, True, True) == ["TV", "Sound", "Microphone (1)"]
    assert mailer.equipment_list(False, False, False) == []


def test_resolve_recipient_applies_redirects(monkeypatch):
    monkeypatch.setattr(settings, "MAIL_REDIRECTS", {"ana@sj.pro.br": "inbox@example.org"})
    assert mailer.resolve_recipient(" ANA@sj.pro.br ") == "inbox@example.org"
    assert mailer.resolve_recipient("joao@sj.pro.br") == "joao@sj.pro.br"


def test_send_reservation_confirmation(resend):
    context = mailer.reservation_email_context(_reservation())
    message_id = asyncio.run(mailer.send_reservation_confirmation(context))

    assert message_id == "msg_123"
    [request] = resend.sent
    assert request.headers["Authorization"] == "Bearer re_test"
    body = json.loads(request.content)
    assert body["to"] == ["inbox@example.org"]
    assert body["subject"] == "Reservation confirmed - Research project <draft>"
    assert "Ana Souza" in body["html"]
    assert "Microphone (2)" in body["html"]
    assert "&lt;draft&gt;" in body["html"]


def test_rejected_message_returns_none(resend):
    resend.status["code"] = 422
    assert asyncio.run(mailer.send_email("ana@sj.pro.br", "Hi", "<p>Hi</p>")) is None


def test_missing_key_skips_delivery(resend, monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "")
    assert asyncio.run(mailer.send_email("ana@sj.pro.br", "Hi", "<p>Hi</p>")) is None
    assert resend.sent == []


def test_missing_recipient_skips_delivery(resend):
    context = mailer.reservation_email_context(_reservation(teacher_email=None))
    assert asyncio.run(mailer.send_reservation_confirmation(context)) is None
    assert resend.sent == []


def test_non_json_success_body_returns_none(resend):
    resend.status["plain"] = True
    assert asyncio.run(mailer.send_email("ana@sj.pro.br", "Hi", "<p>Hi</p>")) is None
    assert len(resend.sent) == 1
