"""GSTIN lookup against the gstincheck.co.in sheet API."""

import re

import httpx
import structlog
from pydantic import BaseModel, Field

from lorrybook.client.config import ClientConfig

logger = structlog.get_logger(__name__)

GSTIN_RE = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")


class GstCustomer(BaseModel):
    """Customer details derived from a GSTIN registration."""

    name: str = Field(..., description="Legal name of business")
    trade_name: str = ""
    address: str
    state: str
    gstin: str


class GstVerificationResult(BaseModel):
    success: bool
    data: GstCustomer | None = None
    error: str | None = None


def validate_gstin(gstin: str) -> bool:
    return bool(GSTIN_RE.fullmatch(gstin))


def _failure(error: str) -> GstVerificationResult:
    return GstVerificationResult(success=False, error=error)


def _status_error(status_code: int) -> str:
    if status_code == 401:
        return "GST API authentication failed. Please check API key configuration."
    if status_code == 429:
        return "GST API rate limit exceeded. Please try again later."
    if status_code >= 500:
        return "GST API server error. Please try again later."
    return f"API call failed with status {status_code}. Please try again."


def map_customer(gstin: str, api_data: dict[str, str | None]) -> GstCustomer:
    """Map the API's registration record onto a customer."""
    legal_name = api_data.get("lgnm")
    trade_name = api_data.get("tradeName")
    return GstCustomer(
        name=legal_name or trade_name or "N/A",
        trade_name=trade_name or legal_name or "",
        address=api_data.get("stj") or api_data.get("addr") or "N/A",
        state=api_data.get("stjCd") or api_data.get("state") or "N/A",
        gstin=gstin,
    )


class GstClient:
    """Fetches customer details for a GSTIN. One call per lookup, no retries."""

    def __init__(self, config: ClientConfig, http: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._http = http

    async def _get(self, url: str) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if self._http is not None:
            return await self._http.get(url, headers=headers, timeout=self._config.timeout)
        async with httpx.AsyncClient() as client:
            return await client.get(url, headers=headers, timeout=self._config.timeout)

    async def fetch_gst_details(self, gstin: str) -> GstVerificationResult:
        """Look up a GSTIN.

        Expected failures (bad input, missing key, API errors, timeouts) are
        returned as unsuccessful results with a user-facing message.
        """
        gstin = gstin.strip().upper()
        if not validate_gstin(gstin):
            return _failure("Please enter a valid 15-digit GSTIN.")

        api_key = self._config.gstin_api_key.strip()
        if not api_key:
            return _failure("GSTIN API key is not configured. Please configure it in Settings > API Keys.")

        url = f"{self._config.gstin_api_url.rstrip('/')}/check/{api_key}/{gstin}"
        try:
            response = await self._get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("gst_lookup_failed", gstin=gstin, status_code=e.response.status_code)
            return _failure(_status_error(e.response.status_code))
        except httpx.TimeoutException:
            logger.error("gst_lookup_timeout", gstin=gstin)
            return _failure("Request timeout. GST API is taking too long to respond. Please try again.")
        except httpx.RequestError as e:
            logger.error("gst_lookup_request_failed", gstin=gstin, error=str(e))
            return _failure("Network error. Please check your internet connection and try again.")
        except ValueError:
            return _failure("Invalid response from GST API. Please try again.")

        if not isinstance(payload, dict):
            return _failure("Invalid response from GST API. Please try again.")

        if not payload.get("flag"):
            message = payload.get("message")
            if message == "Credit Not Available." or payload.get("errorCode") == "CREDIT_NOT_AVAILABLE":
                return _failure(
                    'GST API credits exhausted. Please enter customer details manually using the "Add Manually" option.'
                )
            return _failure(message or "GSTIN not found or invalid. Please verify the GSTIN number.")

        api_data = payload.get("data")
        if not isinstance(api_data, dict):
            return _failure("GSTIN data not found in response. Please try again.")

        logger.info("gst_lookup_succeeded", gstin=gstin)
        return GstVerificationResult(success=True, data=map_customer(gstin, api_data))
