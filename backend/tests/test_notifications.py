import json

import httpx
import pytest

from autoparts.errors import ValidationError
from autoparts.services.notification_service import NotificationError, send_low_stock_alert
from autoparts.services.settings_service import StoreSettings

SETTINGS = StoreSettings(business_name="Corner Auto", notification_email="owner@corner.example")


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_nothing_to_send_when_stock_is_healthy(app, make_item):
    make_item(quantity=10, reorder_level=2)

    def handler(request):
        raise AssertionError("no request expected")

    result = send_low_stock_alert(client=_client(handler), settings=SETTINGS)
    assert result == {"success": True, "message": "No low stock items found", "items_count": 0}


def test_requires_notification_email(app, make_item):
    make_item(quantity=0)
    with pytest.raises(ValidationError):
        send_low_stock_alert(client=_client(lambda r: httpx.Response(200)), settings=StoreSettings())


def test_sends_alert_through_resend(app, make_item):
    make_item(part_name="Alternator", part_number="AL-3005", quantity=1, reorder_level=2)
    make_item(part_name="Oil Filter", part_number="OF-2002", quantity=40, reorder_level=10)
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_123"})

    result = send_low_stock_alert(client=_client(handler), settings=SETTINGS)

    assert result == {"success": True, "items_count": 1, "email_id": "email_123"}
    assert seen["url"] == "https://api.resend.test/emails"
    assert seen["auth"] == "Bearer re_test_key"
    assert seen["body"]["to"] == ["owner@corner.example"]
    assert seen["body"]["subject"] == "Low Stock Alert - 1 items need restocking"
    assert seen["body"]["from"].startswith("Corner Auto <")
    assert "AL-3005" in seen["body"]["html"]
    assert "OF-2002" not in seen["body"]["html"]


def test_provider_error_is_reported(app, make_item):
    make_item(quantity=0)

    def handler(request):
        return httpx.Response(422, json={"message": "Invalid from address"})

    with pytest.raises(NotificationError) as exc:
        send_low_stock_alert(client=_client(handler), settings=SETTINGS)
    assert exc.value.status_code == 502
    assert exc.value.message == "Invalid from address"


def test_unreachable_provider(app, make_item):
    make_item(quantity=0)

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NotificationError):
        send_low_stock_alert(client=_client(handler), settings=SETTINGS)


def test_missing_api_key(app, make_item):
    make_item(quantity=0)
    app.config["RESEND_API_KEY"] = ""
    with pytest.raises(ValidationError):
        send_low_stock_alert(client=_client(lambda r: httpx.Response(200)), settings=SETTINGS)


def test_alert_endpoint_without_email_configured(client, admin_headers, make_item):
    make_item(quantity=0)
    resp = client.post("/api/inventory/low-stock/alert", headers=admin_headers)
    assert resp.status_code == 400
    assert "notification email" in resp.get_json()["error"]


def test_non_object_provider_body(app, make_item):
    make_item(quantity=0)

    with pytest.raises(NotificationError) as exc:
        send_low_stock_alert(client=_client(lambda r: httpx.Response(500, json=["boom"])), settings=SETTINGS)
    assert exc.value.message == "Failed to send email"

    result = send_low_stock_alert(client=_client(lambda r: httpx.Response(200, json="queued")), settings=SETTINGS)
    assert result["email_id"] is None
