from __future__ import annotations

import pytest
import resend

from app.services.mail_handler_service.mailer_resend import EmailError, send_email


pytestmark = pytest.mark.anyio


async def test_send_email_returns_resend_id(monkeypatch):
    sent = []

    def fake_send(params):
        sent.append(params)
        return {"id": "email_123"}

    monkeypatch.setattr(resend.Emails, "send", fake_send)

    response = await send_email(
        "Nuova simulazione", "luca@leonardo.test", html_content="<p>Ciao</p>"
    )

    assert response["id"] == "email_123"
    assert sent[0]["to"] == ["luca@leonardo.test"]
    assert sent[0]["html"] == "<p>Ciao</p>"


async def test_missing_id_is_an_email_error(monkeypatch):
    monkeypatch.setattr(resend.Emails, "send", lambda params: {})

    with pytest.raises(EmailError, match="no email ID"):
        await send_email("Nuova simulazione", "luca@leonardo.test", text_content="Ciao")


async def test_provider_failure_is_wrapped(monkeypatch):
    def broken(params):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(resend.Emails, "send", broken)

    with pytest.raises(EmailError, match="connection reset"):
        await send_email("Nuova simulazione", ["a@leonardo.test", "b@leonardo.test"])
