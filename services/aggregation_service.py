import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from dateutil import parser

from models.schemas import Invoice, LineItem, SummaryResponse

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = timedelta(hours=30)
HOURLY_UNITS = ("GB hours", "server hours")


def logical_unit_key(item: LineItem) -> str:
    if item.cluster_name is not None:
        return f"{item.cluster_name}_{item.sku}"
    return item.sku


def parse_rfc3339(value: str) -> datetime:
    parsed = parser.isoparse(value)
    if parsed.tzinfo is None:
        raise ValueError(f"missing timezone offset in {value!r}")
    return parsed.astimezone(timezone.utc)


def _try_parse(value: str) -> Optional[datetime]:
    try:
        return parse_rfc3339(value)
    except (ValueError, OverflowError):
        return None


def is_later(candidate: str, current: str) -> bool:
    """Compare end dates as timestamps. A parsable date wins over an unparsable one."""
    candidate_ts, current_ts = _try_parse(candidate), _try_parse(current)
    if candidate_ts is not None and current_ts is not None:
        return candidate_ts > current_ts
    if candidate_ts is None and current_ts is None:
        return candidate > current
    return current_ts is None


@dataclass
class AggregateSummary:
    sku: str
    unit: str
    quantity: float
    total_price_cents: int
    end_date: str
    cluster_name: Optional[str] = None
    group_name: Optional[str] = None

    @classmethod
    def from_line_item(cls, item: LineItem) -> "AggregateSummary":
        return cls(
            sku=item.sku,
            unit=item.unit,
            quantity=item.quantity,
            total_price_cents=item.total_price_cents,
            end_date=item.end_date,
            cluster_name=item.cluster_name,
            group_name=item.group_name,
        )

    def merge(self, item: LineItem):
        # Atlas prices skus per region, so the same meter shows up once per
        # region and day. Descriptive fields stay as first seen.
        self.quantity += item.quantity
        self.total_price_cents += item.total_price_cents
        if is_later(item.end_date, self.end_date):
            self.end_date = item.end_date

    @property
    def hourly_rate(self) -> Optional[float]:
        """Price per hour in dollars, or None when no quantity was billed."""
        if self.quantity == 0:
            return None
        rate = self.total_price_cents / self.quantity / 100.0
        if self.unit in HOURLY_UNITS:
            return rate
        return rate / 24.0

    @property
    def labels(self) -> Dict[str, str]:
        return {
            "cluster_name": self.cluster_name or "",
            "group_name": self.group_name or "",
            "sku": self.sku,
        }

    def to_response(self) -> SummaryResponse:
        return SummaryResponse(
            cluster_name=self.cluster_name,
            group_name=self.group_name,
            sku=self.sku,
            unit=self.unit,
            quantity=self.quantity,
            total_price_cents=self.total_price_cents,
            end_date=self.end_date,
            hourly_rate=self.hourly_rate,
        )


@dataclass
class AggregationResult:
    invoice_id: str = ""
    line_item_count: int = 0
    totals: Dict[str, AggregateSummary] = field(default_factory=dict)
    rates: Dict[str, AggregateSummary] = field(default_factory=dict)


def _accumulate(summaries: Dict[str, AggregateSummary], key: str, item: LineItem, name: str):
    existing = summaries.get(key)
    if existing is None:
        logger.debug(f"Did not find existing {key} in {name}")
        summaries[key] = AggregateSummary.from_line_item(item)
    else:
        logger.debug(f"Found existing {key} in {name}")
        existing.merge(item)


def aggregate(invoice: Invoice, now: datetime) -> AggregationResult:
    """Flatten the invoice line items into per-meter totals and recent rates.

    Every line item counts towards ``totals``. Only items whose end date is
    less than ``FRESHNESS_WINDOW`` before ``now`` count towards ``rates``;
    items with an unparsable end date are left out of ``rates`` and logged.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    result = AggregationResult(invoice_id=invoice.id, line_item_count=len(invoice.line_items))

    for item in invoice.line_items:
        key = logical_unit_key(item)
        logger.debug(f"Working on {key}")

        _accumulate(result.totals, key, item, "totals")

        try:
            end_date = parse_rfc3339(item.end_date)
        except (ValueError, OverflowError) as e:
            logger.error(f"Error converting end_date to UTC, skipping {key}: {e}")
            continue

        age = now - end_date
        if age < FRESHNESS_WINDOW:
            logger.debug(f"Including {key}. Age is {age}")
            _accumulate(result.rates, key, item, "rates")
        else:
            logger.debug(f"Skipping {key}, age {age} is not under {FRESHNESS_WINDOW}")

    logger.debug(f"Totals: {result.totals}")
    logger.debug(f"Rates: {result.rates}")
    return result
