from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AtlasModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class LineItem(AtlasModel):
    cluster_name: Optional[str] = None
    group_name: Optional[str] = None
    sku: str
    quantity: float = Field(..., ge=0)
    unit: str
    unit_price_dollars: float
    total_price_cents: int
    start_date: str
    end_date: str
    created: str


class Invoice(AtlasModel):
    id: str
    created: str
    end_date: str
    amount_billed_cents: int
    amount_paid_cents: int
    credits_cents: int
    line_items: List[LineItem] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    cluster_name: Optional[str] = None
    group_name: Optional[str] = None
    sku: str
    unit: str
    quantity: float
    total_price_cents: int
    end_date: str
    hourly_rate: Optional[float] = None


class CollectionReport(BaseModel):
    invoice_id: str
    line_items: int
    totals: Dict[str, SummaryResponse]
    rates: Dict[str, SummaryResponse]
