import logging
from datetime import datetime, timezone
from typing import Callable

from atlas_client.api_client import AtlasAPIClient, FetchResult
from services.aggregation_service import AggregationResult, aggregate
from services.metrics_service import MetricPublisher

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CollectionError(Exception):
    def __init__(self, fetch_result: FetchResult):
        self.fetch_result = fetch_result
        self.kind = fetch_result.result
        super().__init__(f"Failed to fetch pending invoice ({self.kind.value}): {fetch_result.error}")


class BillingExporter:
    """Runs one fetch, aggregate and publish pass per call. Holds no billing state."""

    def __init__(
        self,
        api_client: AtlasAPIClient,
        publisher: MetricPublisher,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.api_client = api_client
        self.publisher = publisher
        self.clock = clock

    async def collect(self) -> AggregationResult:
        fetched = await self.api_client.fetch_pending_invoice()
        if not fetched.ok:
            logger.error(
                f"Pending invoice fetch failed: kind={fetched.result.value} "
                f"status={fetched.status_code} error={fetched.error}"
            )
            raise CollectionError(fetched)

        invoice = fetched.invoice
        logger.debug(f"Aggregating invoice {invoice.id} with {len(invoice.line_items)} line items")

        result = aggregate(invoice, self.clock())
        self.publisher.publish(result)
        return result
