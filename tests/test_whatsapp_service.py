import os
import unittest
from unittest.mock import Mock, patch

import httpx

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

from app.core.config import settings
from app.services.whatsapp_service import (
    WhatsAppDeliveryError,
    build_status_message,
    normalize_phone,
    send_whatsapp,
)


def _mock_client(response=None, error=None):
    client = Mock()
    client.__enter__ = Mock(return_value=client)
    client.__exit__ = Mock(return_value=False)
    if error is not None:
        client.post.side_effect = error
    else:
        client.post.return_value = response
    return client


class NormalizePhoneTests(unittest.TestCase):
    def test_local_numbers_get_country_code(self):
        self.assertEqual(normalize_phone("0501234567"), "+966501234567")
        self.assertEqual(normalize_phone("501234567"), "+966501234567")
        self.assertEqual(normalize_phone("050 123-4567"), "+966501234567")

    def test_international_forms(self):
        self.assertEqual(normalize_phone("00966501234567"), "+966501234567")
        self.assertEqual(normalize_phone("+44 (20) 7946 0958"), "+442079460958")
        self.assertEqual(normalize_phone("442079460958"), "+442079460958")

    def test_empty_values(self):
        self.assertIsNone(normalize_phone(""))
        self.assertIsNone(normalize_phone(" - "))
        self.assertIsNone(normalize_phone(None))


class SendWhatsAppTests(unittest.TestCase):
    def setUp(self):
        self._backup = {
            "WHATSAPP_PROVIDER": settings.WHATSAPP_PROVIDER,
            "WHATSAPP_API_URL": settings.WHATSAPP_API_URL,
            "WHATSAPP_API_KEY": settings.WHATSAPP_API_KEY,
        }

    def tearDown(self):
        for key, value in self._backup.items():
            setattr(settings, key, value)

    def test_dummy_provider_logs_instead_of_sending(self):
        settings.WHATSAPP_PROVIDER = "dummy"
        with patch("app.services.whatsapp_service.httpx.Client") as client_cls:
            payload = send_whatsapp("0501234567", "hello")
        client_cls.assert_not_called()
        self.assertTrue(payload["mocked"])
        self.assertFalse(payload["sent"])

    def test_http_provider_posts_normalized_phone_with_api_key(self):
        settings.WHATSAPP_PROVIDER = "http"
        settings.WHATSAPP_API_URL = "https://wa.example.com/api/v1/external/"
        settings.WHATSAPP_API_KEY = "secret"

        response = Mock()
        response.status_code = 200
        response.content = b'{"id":"m-1"}'
        response.json.return_value = {"id": "m-1"}
        client = _mock_client(response)

        with patch("app.services.whatsapp_service.httpx.Client", return_value=client):
            payload = send_whatsapp("0501234567", "hello")

        self.assertTrue(payload["sent"])
        args, kwargs = client.post.call_args
        self.assertEqual(args[0], "https://wa.example.com/api/v1/external/messages/send")
        self.assertEqual(kwargs["headers"]["X-API-Key"], "secret")
        self.assertEqual(kwargs["json"], {"phone": "+966501234567", "message": "hello"})

    def test_http_errors_raise_delivery_error(self):
        settings.WHATSAPP_PROVIDER = "http"
        settings.WHATSAPP_API_URL = "https://wa.example.com"
        settings.WHATSAPP_API_KEY = "secret"

        response = Mock()
        response.status_code = 502
        response.content = b'{"message":"upstream down"}'
        response.json.return_value = {"message": "upstream down"}
        response.text = '{"message":"upstream down"}'

        with patch("app.services.whatsapp_service.httpx.Client", return_value=_mock_client(response)):
            with self.assertRaises(WhatsAppDeliveryError) as ctx:
                send_whatsapp("0501234567", "hello")
        self.assertIn("upstream down", str(ctx.exception))

        network = _mock_client(error=httpx.ConnectError("refused"))
        with patch("app.services.whatsapp_service.httpx.Client", return_value=network):
            with self.assertRaises(WhatsAppDeliveryError):
                send_whatsapp("0501234567", "hello")

    def test_missing_api_key_is_reported(self):
        settings.WHATSAPP_PROVIDER = "http"
        settings.WHATSAPP_API_URL = "https://wa.example.com"
        settings.WHATSAPP_API_KEY = ""
        with self.assertRaises(WhatsAppDeliveryError):
            send_whatsapp("0501234567", "hello")

    def test_status_message_mentions_notes_only_when_present(self):
        with_notes = build_status_message(request_id="r-1", type_name="student", status="approved", notes="welcome")
        self.assertIn("Status: approved", with_notes)
        self.assertIn("welcome", with_notes)
        without = build_status_message(request_id="r-1", type_name="student", status="rejected")
        self.assertIn("Status: rejected", without)
        self.assertNotIn("Notes", without)

    def test_non_object_json_error_body_still_raises_delivery_error(self):
        settings.WHATSAPP_PROVIDER = "http"
        settings.WHATSAPP_API_URL = "https://wa.example.com"
        settings.WHATSAPP_API_KEY = "secret"

        response = Mock()
        response.status_code = 500
        response.content = b'["boom"]'
        response.json.return_value = ["boom"]
        response.text = '["boom"]'

        with patch("app.services.whatsapp_service.httpx.Client", return_value=_mock_client(response)):
            with self.assertRaises(WhatsAppDeliveryError) as ctx:
                send_whatsapp("0501234567", "hello")
        self.assertIn("boom", str(ctx.exception))

        ok = Mock()
        ok.status_code = 200
        ok.content = b"[1]"
        ok.json.return_value = [1]
        with patch("app.services.whatsapp_service.httpx.Client", return_value=_mock_client(ok)):
            payload = send_whatsapp("0501234567", "hello")
        self.assertEqual(payload["response"], {})
