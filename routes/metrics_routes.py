import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from prometheus_client import CONTENT_TYPE_LATEST

from models.schemas import CollectionReport
from services.exporter_service import BillingExporter, CollectionError

router = APIRouter()
security = HTTPBasic()

HELP_TEXT = """atlas-billing-exporter

Exports the pending MongoDB Atlas invoice of an organization as Prometheus gauges.

Endpoints:
  GET /         Collect now and return a JSON report (basic auth: public key / private key)
  GET /health   Liveness check
  GET /help     This text
  GET /metrics  Collect now and return metrics in the Prometheus text format

Metrics:
  atlas_billing_item_cents_total{cluster_name,group_name,sku}  Pending invoice total in cents
  atlas_billing_item_cents_rate{cluster_name,group_name,sku}   Hourly rate over the last 30 hours, in dollars
"""


def get_exporter(request: Request) -> BillingExporter:
    return request.app.state.exporter


def require_credentials(request: Request, credentials: HTTPBasicCredentials = Depends(security)):
    config = request.app.state.config
    valid_user = secrets.compare_digest(credentials.username.encode(), config.public_key.encode())
    valid_password = secrets.compare_digest(credentials.password.encode(), config.private_key.encode())
    if not (valid_user and valid_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )


async def run_collection(exporter: BillingExporter):
    try:
        return await exporter.collect()
    except CollectionError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to collect billing data"
        )


@router.get(
    "/",
    response_model=CollectionReport,
    summary="Collect billing metrics",
    description="Fetches the pending invoice, updates the gauges and reports the aggregates",
    dependencies=[Depends(require_credentials)],
)
async def root(exporter: BillingExporter = Depends(get_exporter)):
    result = await run_collection(exporter)
    return CollectionReport(
        invoice_id=result.invoice_id,
        line_items=result.line_item_count,
        totals={key: summary.to_response() for key, summary in result.totals.items()},
        rates={key: summary.to_response() for key, summary in result.rates.items()},
    )


@router.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


@router.get("/help", response_class=PlainTextResponse)
def help_text():
    return HELP_TEXT


@router.get("/metrics")
async def metrics(exporter: BillingExporter = Depends(get_exporter)):
    await run_collection(exporter)
    return Response(content=exporter.publisher.render(), media_type=CONTENT_TYPE_LATEST)
