"""Shared fixtures for the exporter tests."""

from datetime import datetime, timedelta, timezone

import pytest
from prometheus_client import CollectorRegistry

from atlas_client.config import ExporterConfig

NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def rfc3339(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def line_item_payload():
    """Factory for camelCase line items as the Atlas API returns them."""

    def _make(**overrides):
        payload = {
            "clusterName": "prod",
            "groupName": "project-a",
            "sku": "ATLAS_INSTANCE",
            "quantity": 1.0,
            "unit": "server hours",
            "unitPriceDollars": 0.1,
            "totalPriceCents": 100,
            "startDate": rfc3339(NOW - timedelta(hours=25)),
            "endDate": rfc3339(NOW - timedelta(hours=1)),
            "created": rfc3339(NOW - timedelta(hours=1)),
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def invoice_payload(line_item_payload):
    def _make(*line_items):
        return {
            "id": "inv-123",
            "created": "2024-03-01T00:00:00Z",
            "endDate": "2024-04-01T00:00:00Z",
            "amountBilledCents": 0,
            "amountPaidCents": 0,
            "creditsCents": 0,
            "lineItems": list(line_items) or [line_item_payload()],
        }

    return _make


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def config() -> ExporterConfig:
    return ExporterConfig(
        port=8080,
        timeout=5.0,
        public_key="public",
        private_key="private",
        org_id="org-1",
        base_url="https://atlas.test/api/atlas/v1.0",
        log_level="INFO",
    )
