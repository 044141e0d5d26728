"""Tests for the gauge publisher and HTTP request metrics."""

import pytest

from services.aggregation_service import AggregateSummary, AggregationResult
from services.metrics_service import MetricPublisher, RequestMetrics


def _summary(**overrides) -> AggregateSummary:
    fields = dict(
        sku="ATLAS_INSTANCE",
        unit="GB hours",
        quantity=10.0,
        total_price_cents=2400,
        end_date="2024-03-15T11:00:00Z",
        cluster_name="prod",
        group_name="project-a",
    )
    fields.update(overrides)
    return AggregateSummary(**fields)


LABELS = {"cluster_name": "prod", "group_name": "project-a", "sku": "ATLAS_INSTANCE"}


@pytest.fixture
def publisher(registry) -> MetricPublisher:
    return MetricPublisher(registry)


class TestMetricPublisher:
    def test_publishes_totals_and_rates(self, publisher, registry):
        summary = _summary()
        publisher.publish(AggregationResult(
            totals={"prod_ATLAS_INSTANCE": summary},
            rates={"prod_ATLAS_INSTANCE": _summary()},
        ))

        assert registry.get_sample_value("atlas_billing_item_cents_total", LABELS) == 2400.0
        assert registry.get_sample_value("atlas_billing_item_cents_rate", LABELS) == pytest.approx(2.4)

    def test_day_unit_rate(self, publisher, registry):
        publisher.publish(AggregationResult(rates={"k": _summary(unit="daily")}))

        assert registry.get_sample_value("atlas_billing_item_cents_rate", LABELS) == pytest.approx(0.1)

    def test_missing_optional_labels_are_empty(self, publisher, registry):
        publisher.publish(AggregationResult(
            totals={"SUPPORT": _summary(sku="SUPPORT", cluster_name=None, group_name=None)},
        ))

        labels = {"cluster_name": "", "group_name": "", "sku": "SUPPORT"}
        assert registry.get_sample_value("atlas_billing_item_cents_total", labels) == 2400.0

    def test_zero_quantity_rate_is_not_published(self, publisher, registry):
        publisher.publish(AggregationResult(
            totals={"k": _summary(quantity=0.0)},
            rates={"k": _summary(quantity=0.0)},
        ))

        assert registry.get_sample_value("atlas_billing_item_cents_total", LABELS) == 2400.0
        assert registry.get_sample_value("atlas_billing_item_cents_rate", LABELS) is None

    def test_republish_drops_vanished_meters(self, publisher, registry):
        publisher.publish(AggregationResult(
            totals={"k": _summary()},
            rates={"k": _summary()},
        ))
        publisher.publish(AggregationResult(totals={"k": _summary(total_price_cents=3000)}))

        assert registry.get_sample_value("atlas_billing_item_cents_total", LABELS) == 3000.0
        assert registry.get_sample_value("atlas_billing_item_cents_rate", LABELS) is None

    def test_render_is_exposition_text(self, publisher):
        publisher.publish(AggregationResult(totals={"k": _summary()}))

        output = publisher.render().decode()

        assert "# TYPE atlas_billing_item_cents_total gauge" in output
        assert 'atlas_billing_item_cents_total{cluster_name="prod",group_name="project-a",sku="ATLAS_INSTANCE"} 2400.0' in output


class TestRequestMetrics:
    def test_observe(self, registry):
        metrics = RequestMetrics(registry)

        metrics.observe("GET", "/health", 200, 0.01)
        metrics.observe("GET", "/health", 200, 0.02)

        labels = {"method": "GET", "path": "/health", "status": "200"}
        assert registry.get_sample_value("http_requests_total", labels) == 2.0
        assert registry.get_sample_value("http_requests_duration_seconds_count", labels) == 2.0
