"""
Tests for health probes.
"""


class TestHealth:

    def test_live(self, client):
        response = client.get("/api/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_ready(self, client):
        response = client.get("/api/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "healthy"

    def test_full_reports_unconfigured_gateway(self, client):
        checks = client.get("/api/health/full").json()["checks"]
        assert checks["gateway"] == {"status": "warning", "configured": False}
        assert checks["database"]["row_counts"] == {"users": 0, "media": 0, "links": 0}

    def test_full_with_gateway(self, client, gateway_keys):
        checks = client.get("/api/health/full").json()["checks"]
        assert checks["gateway"]["configured"] is True
        assert "secret" not in str(checks["gateway"])

    def test_metrics(self, client, test_user):
        response = client.get("/api/health/metrics")
        assert response.status_code == 200
        assert 'adpanel_db_rows{table="users"} 1' in response.text
        assert "adpanel_gateway_configured 0" in response.text

    def test_security_headers(self, client):
        response = client.get("/api/health/live")
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"

    def test_request_id_is_echoed(self, client):
        generated = client.get("/api/health/live")
        assert generated.headers["X-Request-ID"].startswith("req_")

        supplied = client.get("/api/health/live", headers={"X-Request-ID": "abc123"})
        assert supplied.headers["X-Request-ID"] == "abc123"


class TestLogMasking:

    def test_credentials_are_masked(self):
        from adpanel.logging_config import MASK, mask_context

        masked = mask_context({"key_id": "rzp_live_1", "razorpay_key_secret": "shh", "password": "pw", "token": None})
        assert masked == {"key_id": "rzp_live_1", "razorpay_key_secret": MASK, "password": MASK, "token": None}
