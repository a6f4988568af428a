import logging
from logging import Logger
from typing import Dict, Any, Optional
from urllib.parse import urlencode

import requests
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from .config import GET_METHOD_LIMIT, REQUEST_TIMEOUT, USER_AGENT
from .exceptions import APIError, RateLimitError
from .ratelimit import RateGate

logger: Logger = logging.getLogger(__name__)


class ServiceEndpoint:
    """
    Low level request issuer for a single NCBI service URL.

    Every request waits on the endpoint's RateGate before it is sent. Callers
    are responsible for building the service parameters and for interpreting
    the returned body.
    """

    def __init__(
        self,
        url: str,
        rate_gate: RateGate,
        tool: Optional[str] = None,
        email: Optional[str] = None,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
        retries: int = 0,
    ):
        """
        Initialize the endpoint.

        Args:
            url: Service URL
            rate_gate: Gate shared by everything talking to this service
            tool: Name of the calling application (no internal spaces)
            email: Contact address of the user
            api_key: Optional NCBI API key
            session: Optional requests session to reuse
            timeout: Request timeout in seconds
            retries: Extra attempts after an HTTP 429 reply; by default
                throttling is raised to the caller as RateLimitError
        """
        self.url = url
        self.rate_gate = rate_gate
        self.tool = tool
        self.email = email
        self.api_key = api_key
        self.timeout = timeout
        self.retries = retries

        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def prepare(self, params: Dict[str, Any]) -> str:
        """Return the URL-encoded query string for params plus identification."""
        params = {k: v for k, v in params.items() if v is not None}
        if self.tool:
            params["tool"] = self.tool
        if self.email:
            params["email"] = self.email
        if self.api_key:
            params["api_key"] = self.api_key
        return urlencode(params, doseq=True)

    def request(self, params: Dict[str, Any]) -> requests.Response:
        """
        Send one rate-gated request to the service.

        Throttled requests are only repeated when the endpoint was created
        with retries; every attempt waits on the gate again.
        """
        if not self.retries:
            return self._send(params)

        retrying = Retrying(
            stop=stop_after_attempt(self.retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(RateLimitError),
            reraise=True,
        )
        return retrying(self._send, params)

    def _send(self, params: Dict[str, Any]) -> requests.Response:
        """
        Send a single request.

        GET is used unless the encoded URL would reach GET_METHOD_LIMIT, in
        which case the query is sent as a form-encoded POST body.
        """
        query = self.prepare(params)

        # Enforce rate limiting
        self.rate_gate.wait()

        try:
            if len(self.url) + len(query) < GET_METHOD_LIMIT:
                logger.debug(f"GET {self.url}?{query}")
                response = self.session.get(
                    f"{self.url}?{query}",
                    timeout=self.timeout,
                )
            else:
                logger.debug(f"POST {self.url} ({len(query)} bytes)")
                response = self.session.post(
                    self.url,
                    data=query,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    timeout=self.timeout,
                )

            if response.status_code == 429:
                logger.warning(f"Rate limit exceeded at {self.url}")
                raise RateLimitError(f"rate limit exceeded at {self.url}")

            response.raise_for_status()
            return response

        except requests.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise APIError(
                f"NCBI request failed: {e}",
                status_code=getattr(e.response, "status_code", None),
            ) from e

    def call(self, params: Dict[str, Any]) -> str:
        """Send one rate-gated request and return the response body."""
        return self.request(params).text

    def close(self):
        """Close the HTTP session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
