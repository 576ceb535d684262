import os
import unittest
from unittest.mock import Mock, patch

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

from app.core.config import settings
from app.services.email_service import (
    EmailDeliveryError,
    build_status_body,
    build_status_subject,
    email_provider_health,
    send_status_email,
)


class EmailServiceTests(unittest.TestCase):
    def setUp(self):
        self._backup = {
            "EMAIL_PROVIDER": settings.EMAIL_PROVIDER,
            "EMAIL_SERVICE_URL": settings.EMAIL_SERVICE_URL,
            "INTERNAL_SERVICE_TOKEN": settings.INTERNAL_SERVICE_TOKEN,
            "SMTP_HOST": settings.SMTP_HOST,
            "SMTP_FROM": settings.SMTP_FROM,
            "STATUS_EMAIL_TEMPLATE": settings.STATUS_EMAIL_TEMPLATE,
        }

    def tearDown(self):
        for key, value in self._backup.items():
            setattr(settings, key, value)

    def test_dummy_provider_mocks_send(self):
        settings.EMAIL_PROVIDER = "dummy"
        payload = send_status_email(email="User@Example.com", request_id="r-1", type_name="student", status="approved")
        self.assertEqual(payload.get("provider"), "mock_email")
        self.assertTrue(payload.get("mocked"))

    def test_service_provider_calls_internal_email_service(self):
        settings.EMAIL_PROVIDER = "service"
        settings.EMAIL_SERVICE_URL = "http://email-service:8010"
        settings.INTERNAL_SERVICE_TOKEN = "token"

        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.content = b'{"status":"sent"}'
        mock_response.json.return_value = {"status": "sent"}

        mock_client = Mock()
        mock_client.__enter__ = Mock(return_value=mock_client)
        mock_client.__exit__ = Mock(return_value=False)
        mock_client.post.return_value = mock_response

        with patch("app.services.email_service.httpx.Client", return_value=mock_client):
            payload = send_status_email(
                email="user@example.com",
                request_id="r-1",
                type_name="student",
                status="rejected",
                notes="missing documents",
            )
        self.assertEqual(payload.get("provider"), "email-service")
        self.assertTrue(bool(payload.get("sent")))
        kwargs = mock_client.post.call_args.kwargs
        self.assertEqual(kwargs["headers"]["X-Internal-Token"], "token")
        self.assertEqual(kwargs["json"]["email"], "user@example.com")
        self.assertIn("rejected", kwargs["json"]["subject"])
        self.assertIn("missing documents", kwargs["json"]["body"])

    def test_service_error_with_list_body_raises_delivery_error(self):
        settings.EMAIL_PROVIDER = "service"
        settings.EMAIL_SERVICE_URL = "http://email-service:8010"
        settings.INTERNAL_SERVICE_TOKEN = "token"

        mock_response = Mock()
        mock_response.status_code = 503
        mock_response.content = b'["unavailable"]'
        mock_response.json.return_value = ["unavailable"]
        mock_response.text = '["unavailable"]'

        mock_client = Mock()
        mock_client.__enter__ = Mock(return_value=mock_client)
        mock_client.__exit__ = Mock(return_value=False)
        mock_client.post.return_value = mock_response

        with patch("app.services.email_service.httpx.Client", return_value=mock_client):
            with self.assertRaises(EmailDeliveryError) as ctx:
                send_status_email(email="user@example.com", request_id="r-1", type_name="agent", status="approved")
        self.assertIn("unavailable", str(ctx.exception))

    def test_smtp_provider_sends_message(self):
        settings.EMAIL_PROVIDER = "smtp"
        settings.SMTP_HOST = "smtp.example.com"
        settings.SMTP_FROM = "noreply@example.com"

        smtp = Mock()
        smtp.__enter__ = Mock(return_value=smtp)
        smtp.__exit__ = Mock(return_value=False)
        with patch("app.services.email_service.smtplib.SMTP", return_value=smtp):
            payload = send_status_email(email="user@example.com", request_id="r-1", type_name="agent", status="approved")
        self.assertTrue(payload["sent"])
        message = smtp.send_message.call_args.args[0]
        self.assertEqual(message["To"], "user@example.com")
        self.assertEqual(message["From"], "noreply@example.com")

    def test_smtp_without_host_raises(self):
        settings.EMAIL_PROVIDER = "smtp"
        settings.SMTP_HOST = ""
        with self.assertRaises(EmailDeliveryError):
            send_status_email(email="user@example.com", request_id="r-1", type_name="agent", status="approved")

    def test_unknown_provider_raises(self):
        settings.EMAIL_PROVIDER = "unknown"
        with self.assertRaises(EmailDeliveryError):
            send_status_email(email="user@example.com", request_id="r-1", type_name="agent", status="approved")
        self.assertEqual(email_provider_health()["status"], "error")

    def test_templates_render_and_survive_bad_placeholders(self):
        self.assertEqual(build_status_subject(request_id="r-9", status="approved"), "Request #r-9 update: approved")
        body = build_status_body(request_id="r-9", type_name="student", status="approved", notes=None)
        self.assertIn("has been approved.", body)
        self.assertNotIn("Notes", body)

        settings.STATUS_EMAIL_TEMPLATE = "Hello {unknown_placeholder}"
        fallback = build_status_body(request_id="r-9", type_name="student", status="rejected", notes="sorry")
        self.assertIn("has been rejected", fallback)
        self.assertIn("sorry", fallback)
