from tests.admin.base import *  # noqa: F401,F403


class AdminSystemHealthTests(AdminApiBase):
    def _override(self, **values):
        for key, value in values.items():
            self.addCleanup(setattr, settings, key, getattr(settings, key))
            setattr(settings, key, value)

    def test_email_provider_health_reports_missing_smtp_settings(self):
        self._override(EMAIL_PROVIDER="smtp", SMTP_HOST="", SMTP_FROM="noreply@example.com")
        response = self.client.get("/api/admin/system/email-provider-health", headers=self._auth_headers())
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["provider"], "smtp")
        self.assertEqual(body["status"], "degraded")
        self.assertFalse(body["can_send"])
        self.assertEqual(body["issues"], ["SMTP_HOST is not configured"])

    def test_whatsapp_provider_health(self):
        self._override(WHATSAPP_PROVIDER="http", WHATSAPP_API_URL="https://wa.example.com", WHATSAPP_API_KEY="")
        degraded = self.client.get("/api/admin/system/whatsapp-provider-health", headers=self._auth_headers()).json()
        self.assertEqual(degraded["status"], "degraded")
        self.assertEqual(degraded["issues"], ["WHATSAPP_API_KEY is not configured"])

        settings.WHATSAPP_PROVIDER = "dummy"
        ok = self.client.get("/api/admin/system/whatsapp-provider-health", headers=self._auth_headers()).json()
        self.assertEqual(ok, {"provider": "dummy", "status": "ok", "mode": "mock", "can_send": True, "issues": []})

        settings.WHATSAPP_PROVIDER = "carrier-pigeon"
        unknown = self.client.get("/api/admin/system/whatsapp-provider-health", headers=self._auth_headers()).json()
        self.assertEqual(unknown["status"], "error")

    def test_provider_health_requires_admin(self):
        self.assertEqual(self.client.get("/api/admin/system/email-provider-health").status_code, 401)
        forbidden = self.client.get(
            "/api/admin/system/whatsapp-provider-health", headers=self._auth_headers("VIEWER")
        )
        self.assertEqual(forbidden.status_code, 403)
