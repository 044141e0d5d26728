import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx
from pydantic import ValidationError

from models.schemas import Invoice
from .config import ExporterConfig, exporter_config

logger = logging.getLogger(__name__)


class FetchStatus(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    TRANSPORT = "transport"
    UNEXPECTED_STATUS = "unexpected_status"
    DECODE = "decode"


STATUS_CODE_MAP = {
    404: FetchStatus.NOT_FOUND,
    403: FetchStatus.FORBIDDEN,
    401: FetchStatus.UNAUTHORIZED,
}


@dataclass
class FetchResult:
    result: FetchStatus
    status_code: int
    invoice: Optional[Invoice] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result == FetchStatus.SUCCESS


class AtlasAPIClient:
    def __init__(self, config: ExporterConfig = None, transport: httpx.AsyncBaseTransport = None):
        self.config = config or exporter_config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            async with self._lock:
                if self._client is None or self._client.is_closed:
                    self._client = httpx.AsyncClient(
                        base_url=self.config.base_url,
                        auth=httpx.DigestAuth(self.config.public_key, self.config.private_key),
                        headers={"Accept": "application/json"},
                        timeout=httpx.Timeout(self.config.timeout),
                        transport=self._transport,
                    )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, path: str) -> FetchResult:
        client = await self._get_client()
        logger.debug(f"Getting url {self.config.base_url}{path}")

        try:
            response = await client.get(path)
        except httpx.TimeoutException as e:
            logger.error(f"Request timeout after {self.config.timeout:g}s: {path}")
            return FetchResult(result=FetchStatus.TRANSPORT, status_code=0, error=f"Request timeout: {e}")
        except httpx.HTTPError as e:
            logger.error(f"Request error: {e}")
            return FetchResult(result=FetchStatus.TRANSPORT, status_code=0, error=str(e))

        if response.status_code in STATUS_CODE_MAP:
            kind = STATUS_CODE_MAP[response.status_code]
            return FetchResult(result=kind, status_code=response.status_code, error=kind.value)

        if response.status_code != 200:
            logger.error(f"Got bad status code getting {path}: {response.status_code}")
            return FetchResult(
                result=FetchStatus.UNEXPECTED_STATUS,
                status_code=response.status_code,
                error=f"Unexpected status code {response.status_code}",
            )

        try:
            invoice = Invoice.model_validate(response.json())
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.error(f"Could not decode pending invoice: {e}")
            return FetchResult(result=FetchStatus.DECODE, status_code=response.status_code, error=str(e))

        return FetchResult(result=FetchStatus.SUCCESS, status_code=response.status_code, invoice=invoice)

    async def fetch_pending_invoice(self, org_id: str = None) -> FetchResult:
        org_id = org_id or self.config.org_id
        return await self.get(f"/orgs/{org_id}/invoices/pending")
