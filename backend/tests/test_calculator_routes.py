"""
test_calculator_routes.py — HTTP adapter tests using FastAPI's TestClient.

Tests cover:
  - /health liveness payload
  - POST /api/calculator/costing, /what-if, /quote-view happy paths
  - Engine error values mapped to 422 {code, message, field}
  - X-Request-ID propagation and X-Process-Time header
"""

import pytest
from fastapi.testclient import TestClient

from makercalc.main import app


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "active"

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"
        assert "X-Process-Time" in resp.headers


class TestCostingRoute:

    def test_costing(self, client, basic_cost_inputs):
        resp = client.post("/api/calculator/costing", json=basic_cost_inputs)
        assert resp.status_code == 200
        body = resp.json()
        assert body["net_revenue"] == "90.91"
        assert body["profit"] == "30.91"
        assert body["margin_percent"] == "34.00"

    def test_invalid_costing_is_422(self, client, basic_cost_inputs):
        basic_cost_inputs["production"] = {"units_produced": 0}
        resp = client.post("/api/calculator/costing", json=basic_cost_inputs)
        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert detail["code"] == "InvalidInput"
        assert detail["field"] == "production.units_produced"

    def test_what_if(self, client, per_unit_cost_inputs):
        resp = client.post("/api/calculator/what-if", json={
            "inputs": per_unit_cost_inputs,
            "price_changes": [0, 10],
            "quantity_changes": [0],
        })
        assert resp.status_code == 200
        row = resp.json()["rows"][0]
        assert [c["profit"] for c in row] == ["80.00", "90.00"]


class TestQuoteViewRoute:

    _QUOTE = {
        "id": "q-1",
        "quote_number": "Q260305-001",
        "currency": "USD",
        "products": [
            {"id": "a", "product_name": "Mug", "unit_price": "100", "vat_settings": {"rate": 0}},
            {"id": "b", "product_name": "Tray", "unit_price": "50", "vat_settings": {"rate": 0}},
        ],
    }

    def test_quote_view(self, client):
        resp = client.post("/api/calculator/quote-view", json={
            "quote": self._QUOTE,
            "customer_type": "private",
            "discount": {"kind": "percentage", "value": 10},
            "shipping": {"amount": 20, "is_free": True},
        })
        assert resp.status_code == 200
        body = resp.json()
        assert [l["discount_gross"] for l in body["lines"]] == ["10.00", "5.00"]
        assert body["totals"]["grand_total_gross"] == "135.00"
        assert body["shipping_line"]["is_free"] is True

    def test_capped_discount_warning(self, client):
        resp = client.post("/api/calculator/quote-view", json={
            "quote": self._QUOTE,
            "customer_type": "business",
            "discount": {"kind": "fixed", "value": 10000},
        })
        assert resp.status_code == 200
        assert resp.json()["warnings"][0]["code"] == "DiscountCapped"

    def test_currency_mismatch_is_422(self, client):
        quote = dict(self._QUOTE, currency="EUR")
        resp = client.post("/api/calculator/quote-view", json={"quote": quote})
        assert resp.status_code == 422
        assert resp.json()["detail"]["code"] == "QuoteComputationError"


class TestLogFormat:

    def test_json_line_carries_request_context(self):
        import json
        import logging
        from makercalc.services.logging_config import JSONFormatter

        record = logging.LogRecord("makercalc-api", logging.INFO, __file__, 1, "request completed", None, None)
        record.request_id = "req-7"
        record.http_status = 200
        line = json.loads(JSONFormatter().format(record))
        assert line["msg"] == "request completed"
        assert line["request_id"] == "req-7"
        assert line["http_status"] == 200
        assert "quote_id" not in line
