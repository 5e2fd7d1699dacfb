"""
Analysis Function Client

Calls the hosted serverless functions over HTTP with a bearer token.
The two payment analysis functions get typed wrappers; everything else
goes through invoke_function.
"""

import os
from typing import Any, Dict, List, Optional

import httpx
from dotenv import load_dotenv

from obligations.models.analysis import AnalysisResponse, ExpectedPayment
from obligations.utils.errors import AnalysisServiceError
from obligations.utils.logger import log_message

load_dotenv()

FUNCTIONS_BASE_URL = os.getenv("FUNCTIONS_BASE_URL", "http://localhost:54321/functions/v1")
FUNCTIONS_API_KEY = os.getenv("FUNCTIONS_API_KEY", "")
FUNCTIONS_TIMEOUT = float(os.getenv("FUNCTIONS_TIMEOUT", 120))

ANALYZE_PAYMENT = "analyze-payment"
ANALYZE_PAYMENT_BATCH = "analyze-payment-batch"


class FunctionsClient:
    """Async HTTP client for the hosted functions."""

    def __init__(
        self,
        base_url: str = FUNCTIONS_BASE_URL,
        api_key: str = FUNCTIONS_API_KEY,
        timeout: float = FUNCTIONS_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Content-Type": "application/json"}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def invoke_function(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON body to a function and return its JSON response.

        Args:
            name: Function name (e.g. 'analyze-payment')
            body: JSON-serializable request body

        Returns:
            dict: Decoded response body

        Raises:
            AnalysisServiceError: If the function is missing, unreachable,
                answers with an HTTP error, or reports succes=false.
        """
        client = await self._get_client()
        try:
            resp = await client.post(f"/{name}", json=body)
        except httpx.RequestError as e:
            log_message("error", f"Function {name} unreachable: {e}")
            raise AnalysisServiceError(f"Function '{name}' is unreachable: {e}") from e

        if resp.status_code == 404:
            log_message("error", f"Function {name} is not deployed")
            raise AnalysisServiceError(f"Analysis function '{name}' is not deployed")

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.is_error:
            message = (data or {}).get("erreur") if isinstance(data, dict) else None
            log_message("error", f"Function {name} failed with HTTP {resp.status_code}: {message or resp.text[:200]}")
            raise AnalysisServiceError(
                message or f"Function '{name}' failed with HTTP {resp.status_code}"
            )

        if not isinstance(data, dict):
            raise AnalysisServiceError(f"Function '{name}' returned an invalid response")

        if data.get("succes") is False:
            raise AnalysisServiceError(data.get("erreur") or "Analysis failed")

        return data

    async def analyze_payment(
        self,
        file_urls: List[str],
        expected_amount: float,
        due_date: str,
        tranche_name: str,
        investor_name: str,
    ) -> AnalysisResponse:
        """
        Analyze proof images for one expected payment.

        Args:
            file_urls: Public URLs of the page images
            expected_amount: Amount the payment should carry
            due_date: Due date formatted DD-MM-YYYY
            tranche_name: Tranche label shown to the model
            investor_name: Expected beneficiary
        """
        body = {
            "fileUrls": file_urls,
            "expectedAmount": expected_amount,
            "dueDate": due_date,
            "trancheName": tranche_name,
            "investorName": investor_name,
        }
        log_message("info", f"Calling {ANALYZE_PAYMENT} with {len(file_urls)} image(s)")
        data = await self.invoke_function(ANALYZE_PAYMENT, body)
        return AnalysisResponse.model_validate(data)

    async def analyze_payment_batch(
        self, file_urls: List[str], expected_payments: List[ExpectedPayment]
    ) -> AnalysisResponse:
        """Analyze proof images against every expected payment of a tranche."""
        body = {
            "fileUrls": file_urls,
            "expectedPayments": [p.model_dump(by_alias=True) for p in expected_payments],
        }
        log_message(
            "info",
            f"Calling {ANALYZE_PAYMENT_BATCH} with {len(file_urls)} image(s) "
            f"and {len(expected_payments)} expected payment(s)",
        )
        data = await self.invoke_function(ANALYZE_PAYMENT_BATCH, body)
        return AnalysisResponse.model_validate(data)


_default_client: Optional[FunctionsClient] = None


def get_functions_client() -> FunctionsClient:
    global _default_client
    if _default_client is None:
        _default_client = FunctionsClient()
    return _default_client


async def close_functions_client():
    global _default_client
    if _default_client is not None:
        await _default_client.close()
        _default_client = None
