"""
Client for the NCBI BLAST URL API.

BLAST searches are asynchronous: a Put request returns a request ID (RID)
and an estimate of when the results will be ready (RTOE). The results are
then polled for with SearchInfo requests and retrieved with Get.

Two usage-policy limits apply. Every request to the server is spaced by
the service-wide RateGate (one request every 3 seconds by default), and
each RID may only be polled once a minute, which each JobHandle enforces
with a RateGate of its own.

Example:
    >>> client = BlastClient(tool="my-tool", email="me@example.org")
    >>> params = PutParameters(program="blastn", database="nt")
    >>> output = run_blast_search(client, "ACGTACGTACGT", retries=10, put_params=params)
"""

import time
import logging
from enum import Enum
from logging import Logger
from typing import Callable, Dict, Optional

import requests
from pydantic import BaseModel, ConfigDict

from .config import BLAST_URL, BLAST_RATE_LIMIT, RID_POLL_LIMIT
from .exceptions import (
    BadRequestError,
    MissingRidError,
    MissingStatusError,
    NCBIClientError,
    NoHitsError,
    NoRidProvidedError,
    RetriesExceededError,
    SearchExpiredError,
    SearchFailedError,
    UnknownStatusError,
    ValidationError,
)
from .output import BlastOutput, parse_blast_output
from .params import GetParameters, PutParameters
from .qblast import find_error_message, first_comment, parse_qblast_info
from .ratelimit import RateGate, shared_gate
from .transport import ServiceEndpoint

logger: Logger = logging.getLogger(__name__)


class SearchState(str, Enum):
    """Status values reported by SearchInfo."""
    WAITING = "WAITING"
    READY = "READY"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


class SearchStatus(BaseModel):
    """
    Status of a submitted search as reported by one SearchInfo poll.

    `state` is kept as the raw server string so that values outside
    SearchState can be reported. `have_hits` is only meaningful when the
    search is READY.
    """
    model_config = ConfigDict(frozen=True)

    rid: str
    state: str
    have_hits: bool = False

    @property
    def is_ready(self) -> bool:
        return self.state == SearchState.READY

    def __str__(self) -> str:
        return f"RID:{self.rid} Status:{self.state} Hits:{self.have_hits}"


class JobHandle:
    """
    A submitted BLAST search, identified by its RID.

    The RID and the ready time are fixed when the handle is created. A
    handle with an empty RID is invalid: waiting on it returns at once and
    every request method raises NoRidProvidedError without contacting the
    server.
    """

    def __init__(
        self,
        rid: str,
        ready_at: float,
        client: "BlastClient",
        poll_gate: Optional[RateGate] = None,
    ):
        """
        Initialize a handle.

        Args:
            rid: Request ID assigned by the BLAST server
            ready_at: Time, on the client's clock, the results are expected
            client: Client used to issue requests for this RID
            poll_gate: Gate spacing SearchInfo polls of this RID
        """
        self._rid = rid
        self._ready_at = ready_at
        self._client = client
        self._poll_gate = poll_gate or RateGate(
            client.poll_interval, clock=client.clock, sleep=client.sleep
        )

    @property
    def rid(self) -> str:
        return self._rid

    @property
    def ready_at(self) -> float:
        return self._ready_at

    @property
    def failed(self) -> bool:
        """True when the handle can never become ready."""
        return not self._rid

    def __str__(self) -> str:
        return self._rid

    def __repr__(self) -> str:
        return f"JobHandle(rid={self._rid!r}, ready_at={self._ready_at})"

    def _require_rid(self) -> str:
        if not self._rid:
            raise NoRidProvidedError()
        return self._rid

    def time_of_execution(self) -> float:
        """Seconds remaining until the results are expected, 0 once elapsed."""
        return max(0.0, self._ready_at - self._client.clock())

    def wait_until_ready(self) -> bool:
        """
        Block until the estimated ready time has passed.

        Returns:
            False immediately if the handle is invalid, otherwise True once
            the ready time has been reached
        """
        if self.failed:
            return False
        remaining = self.time_of_execution()
        if remaining > 0:
            logger.debug(f"Waiting {remaining:.1f}s for RID {self._rid}")
            self._client.sleep(remaining)
        return True

    def poll(self) -> SearchStatus:
        """
        Request the search status.

        Polls of the same RID are spaced by the handle's poll gate, and each
        request also waits on the service-wide gate.

        Raises:
            NoRidProvidedError: If the handle has no RID
            MissingStatusError: If the response carries no Status field
        """
        rid = self._require_rid()
        self._poll_gate.wait()

        body = self._client.endpoint.call(
            {"CMD": "Get", "FORMAT_OBJECT": "SearchInfo", "RID": rid}
        )

        info = parse_qblast_info(body, separator="=") or {}
        state = info.get("Status")
        if not state:
            raise MissingStatusError()

        status = SearchStatus(rid=rid, state=state, have_hits="ThereAreHits" in info)
        logger.debug(f"SearchInfo: {status}")
        return status

    def fetch_raw(self, params: Optional[GetParameters] = None) -> str:
        """
        Retrieve the search results unparsed, in the format params request.

        Raises:
            NoRidProvidedError: If the handle has no RID
        """
        rid = self._require_rid()
        v = params.to_params() if params is not None else {}
        v["CMD"] = "Get"
        v["RID"] = rid
        data = self._client.endpoint.call(v)

        logger.info(f"Get: RID {rid}, size={len(data)} bytes")
        return data

    def fetch(self, params: Optional[GetParameters] = None) -> BlastOutput:
        """
        Retrieve and parse the search results.

        The request always asks for XML output whatever FORMAT_TYPE params
        carries.

        Raises:
            NoRidProvidedError: If the handle has no RID
            ValidationError: If the results cannot be parsed
        """
        params = (params or GetParameters()).model_copy(update={"format_type": "XML"})
        return parse_blast_output(self.fetch_raw(params))

    def release(self) -> None:
        """
        Ask the server to delete the request and its results.

        Raises:
            NoRidProvidedError: If the handle has no RID
        """
        rid = self._require_rid()
        self._client.endpoint.call({"CMD": "Delete", "RID": rid})
        logger.info(f"Delete: RID {rid}")


class BlastClient:
    """
    Client for the NCBI BLAST server.
    """

    def __init__(
        self,
        tool: str,
        email: str,
        rate_gate: Optional[RateGate] = None,
        session: Optional[requests.Session] = None,
        poll_interval: float = RID_POLL_LIMIT,
        url: str = BLAST_URL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        throttle_retries: int = 0,
    ):
        """
        Initialize BLAST client.

        Args:
            tool: Name of the calling application (no internal spaces)
            email: Email address of the BLAST user
            rate_gate: Gate for all requests; defaults to the shared BLAST gate
            session: Optional requests session to reuse
            poll_interval: Minimum seconds between polls of one RID
            url: BLAST URL API endpoint
            clock: Monotonic time source used for ready times
            sleep: Function used to wait for ready times
            throttle_retries: Attempts to repeat a request answered with
                HTTP 429; zero raises RateLimitError at once
        """
        self.tool = tool
        self.email = email
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep

        if rate_gate is None:
            rate_gate = shared_gate("blast", BLAST_RATE_LIMIT)

        self.endpoint = ServiceEndpoint(
            url,
            rate_gate,
            tool=tool,
            email=email,
            session=session,
            retries=throttle_retries,
        )

        logger.info(
            f"Initialized BLAST client (rate_limit={rate_gate.interval}s, "
            f"poll_interval={poll_interval}s)"
        )

    def submit(self, query: str, params: Optional[PutParameters] = None) -> JobHandle:
        """
        Submit a search and return the handle for its RID.

        Raises:
            BadRequestError: If the server rejected the submission
            MissingRidError: If the response lacks the RID or RTOE field
            ValidationError: If the RTOE field is not an integer
        """
        v: Dict[str, str] = params.to_params() if params is not None else {}
        if query:
            v["QUERY"] = query
        v["CMD"] = "Put"

        body = self.endpoint.call(v)
        handle = self._handle_from_submission(body)

        logger.info(
            f"Put: RID {handle.rid}, "
            f"estimated ready in {handle.time_of_execution():.0f}s"
        )
        return handle

    def _handle_from_submission(self, body: str) -> JobHandle:
        message = find_error_message(body)
        if message is not None:
            raise BadRequestError(message)

        info = parse_qblast_info(body, separator=" = ") or {}
        rid = info.get("RID", "")
        rtoe = info.get("RTOE")
        if not rid or rtoe is None:
            raise MissingRidError()

        try:
            seconds = int(rtoe)
        except ValueError as e:
            raise ValidationError(f"blast: malformed RTOE field {rtoe!r}") from e

        return JobHandle(rid, self.clock() + seconds, self)

    def job(self, rid: str) -> JobHandle:
        """
        Return a handle for a search submitted elsewhere.

        The handle is ready immediately but its polls are still subject to
        the per-RID poll limit.
        """
        return JobHandle(rid, self.clock(), self)

    def request_info(self, target: str = "") -> str:
        """Return the BLAST server's service information block."""
        v = {"CMD": "Info"}
        if target:
            v["TARGET"] = target
        body = self.endpoint.call(v)
        info = first_comment(body)
        if info is None:
            raise ValidationError("blast: no information block in Info response")
        return info

    def close(self):
        """Close the HTTP session."""
        self.endpoint.close()
        logger.info("Closed BLAST client session")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def run_blast_search(
    client: BlastClient,
    query: str,
    retries: int,
    put_params: Optional[PutParameters] = None,
    get_params: Optional[GetParameters] = None,
) -> BlastOutput:
    """
    Submit a search, wait for it and return its results.

    Each attempt waits for the estimated ready time, polls the status and,
    when hits are available, fetches them. WAITING and failed fetches use up
    one attempt; FAILED, UNKNOWN and READY without hits end the search.

    Raises:
        SearchFailedError: The server reported the search as failed
        SearchExpiredError: The server no longer knows the RID
        NoHitsError: The search finished without hits
        UnknownStatusError: The server returned an unrecognised status
        RetriesExceededError: No results were fetched within `retries` attempts
    """
    handle = client.submit(query, put_params)

    last_error: Optional[NCBIClientError] = None
    for attempt in range(1, retries + 1):
        if not handle.wait_until_ready():
            raise NoRidProvidedError()

        status = handle.poll()
        logger.info(f"Attempt {attempt}/{retries}: {status}")

        if status.state == SearchState.WAITING:
            continue
        if status.state == SearchState.FAILED:
            raise SearchFailedError(f"search: {handle} failed", rid=handle.rid)
        if status.state == SearchState.UNKNOWN:
            raise SearchExpiredError(f"search: {handle} expired", rid=handle.rid)
        if status.state != SearchState.READY:
            raise UnknownStatusError(
                f"search: {handle} unknown status {status.state!r}",
                rid=handle.rid,
                status=status.state,
            )
        if not status.have_hits:
            raise NoHitsError(f"search: {handle} no hits", rid=handle.rid)

        try:
            return handle.fetch(get_params)
        except NCBIClientError as e:
            logger.warning(f"Fetching results for {handle} failed: {e}")
            last_error = e

    raise RetriesExceededError(
        f"search: {handle} exceeded retries", rid=handle.rid
    ) from last_error
