from __future__ import annotations

from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
import requests
from werkzeug.datastructures import FileStorage

from app.core.errors import IntegrationError, ValidationError
from app.inscripciones.storage import LocalReceiptStorage
from app.integrations.mail import TelegramInviteMailer
from app.integrations.moodle import MoodleClient


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def _client(*payloads):
    session = MagicMock()
    session.post.side_effect = [_response(payload) for payload in payloads]
    return MoodleClient("https://moodle.example.com/", "token-123", timeout=3, session=session), session


def _wsfunctions(session):
    return [call.kwargs["data"]["wsfunction"] for call in session.post.call_args_list]


def test_moodle_enroll_creates_user_and_enrols():
    client, session = _client([], [{"id": 9, "username": "ana@example.com"}], [], None)

    assert client.enroll(42, "Ana@example.com", "Ana", "Torres") == 9
    assert _wsfunctions(session) == [
        "core_user_get_users_by_field",
        "core_user_create_users",
        "core_enrol_get_enrolled_users",
        "enrol_manual_enrol_users",
    ]
    first = session.post.call_args_list[0]
    assert first.args[0] == "https://moodle.example.com/webservice/rest/server.php"
    assert first.kwargs["timeout"] == 3
    assert first.kwargs["data"]["wstoken"] == "token-123"
    assert first.kwargs["data"]["moodlewsrestformat"] == "json"
    enrol = session.post.call_args_list[3].kwargs["data"]
    assert enrol["enrolments[0][roleid]"] == 5
    assert enrol["enrolments[0][userid]"] == 9
    assert enrol["enrolments[0][courseid]"] == 42


def test_moodle_enroll_skips_when_already_enrolled():
    client, session = _client([{"id": 9}], [{"id": 3}, {"id": 9}])
    assert client.enroll(42, "ana@example.com", "Ana", "Torres") == 9
    assert "enrol_manual_enrol_users" not in _wsfunctions(session)


def test_moodle_exception_payload_is_an_error():
    client, _session = _client({"exception": "moodle_exception", "errorcode": "invalidtoken", "message": "Token invalido"})
    with pytest.raises(IntegrationError) as excinfo:
        client.find_user_by_email("ana@example.com")
    assert "Token invalido" in excinfo.value.message
    assert excinfo.value.integration == "moodle"


def test_moodle_critical_warning_is_an_error():
    client, _session = _client({"warnings": [{"warningcode": "enrolnotpermitted", "message": "No"}]})
    with pytest.raises(IntegrationError):
        client.enrol_user(42, 9)


def test_moodle_timeout_is_an_integration_error():
    session = MagicMock()
    session.post.side_effect = requests.exceptions.Timeout("slow")
    client = MoodleClient("https://moodle.example.com", "token", session=session)
    with pytest.raises(IntegrationError):
        client.enroll(42, "ana@example.com", "Ana", "Torres")


def test_moodle_configuration():
    assert not MoodleClient("", "token").is_configured()
    assert not MoodleClient("https://moodle.example.com", "").is_configured()
    client = MoodleClient.from_config({"MOODLE_URL": "https://m.example.com", "MOODLE_TOKEN": "t", "MOODLE_TIMEOUT": 4.0})
    assert client.is_configured()
    assert client.timeout == 4.0


def test_mailer_sends_invite_over_smtp():
    mailer = TelegramInviteMailer("smtp.example.com", 587, "user", "secret", "noreply@example.com", timeout=5)
    with patch("app.integrations.mail.smtplib.SMTP") as smtp_cls:
        smtp = smtp_cls.return_value.__enter__.return_value
        mailer.send_invite("https://t.me/+abc", "ana@example.com", nombre="Ana Torres", curso="Python")

    smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=5)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("user", "secret")
    message = smtp.send_message.call_args.args[0]
    assert message["To"] == "ana@example.com"
    assert message["From"] == "noreply@example.com"
    assert "Python" in message["Subject"]
    assert "https://t.me/+abc" in message.get_body(("plain",)).get_content()


def test_mailer_errors_propagate_as_oserror():
    mailer = TelegramInviteMailer("smtp.example.com", 587, "user", "secret")
    with patch("app.integrations.mail.smtplib.SMTP", side_effect=TimeoutError("timed out")):
        with pytest.raises(OSError):
            mailer.send_invite("https://t.me/+abc", "ana@example.com")


def test_mailer_configuration():
    assert not TelegramInviteMailer("", 587, "user", "secret").is_configured()
    assert not TelegramInviteMailer("smtp.example.com", 587, "", "").is_configured()
    assert TelegramInviteMailer("smtp.example.com", 587, "user", "secret").sender == "user"


def test_receipt_storage_store_and_delete(tmp_path):
    storage = LocalReceiptStorage(tmp_path / "comprobantes")
    upload = FileStorage(stream=BytesIO(b"%PDF-1.4"), filename="../pago enero.pdf", content_type="application/pdf")

    stored = storage.store(upload)

    assert stored.filename == "pago_enero.pdf"
    assert stored.mime_type == "application/pdf"
    assert (tmp_path / "comprobantes").exists()
    assert storage.delete(stored.path) is True
    assert storage.delete(stored.path) is False


def test_receipt_storage_rejects_bad_uploads(tmp_path):
    storage = LocalReceiptStorage(tmp_path)
    with pytest.raises(ValidationError):
        storage.store(None)
    with pytest.raises(ValidationError):
        storage.store(FileStorage(stream=BytesIO(b"MZ"), filename="x.exe", content_type="application/x-msdownload"))
