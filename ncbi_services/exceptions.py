"""Custom exceptions for the NCBI service clients."""
from typing import Optional


class NCBIClientError(Exception):
    """Base exception for NCBI client errors."""
    pass


class RateLimitError(NCBIClientError):
    """Raised when the server rejects a request as too frequent."""
    pass


class APIError(NCBIClientError):
    """Raised when an NCBI service request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ValidationError(NCBIClientError):
    """Raised when response validation fails."""
    pass


class NoRidProvidedError(NCBIClientError):
    """Raised when a BLAST operation is attempted on a handle without a RID."""

    def __init__(self, message: str = "blast: no RID provided"):
        super().__init__(message)


class MissingRidError(NCBIClientError):
    """Raised when a submission response lacks the RID or RTOE field."""

    def __init__(self, message: str = "blast: missing RID/RTOE field"):
        super().__init__(message)


class MissingStatusError(NCBIClientError):
    """Raised when a SearchInfo response lacks the Status field."""

    def __init__(self, message: str = "blast: missing Status field"):
        super().__init__(message)


class BadRequestError(NCBIClientError):
    """Raised when the BLAST server reports an error for a submission."""
    pass


class TranslationStackCorruptedError(NCBIClientError):
    """Raised when a translation stack cannot be folded into a single tree."""

    def __init__(self, message: str = "entrez: translation stack corrupted"):
        super().__init__(message)


class NoIdProvidedError(NCBIClientError):
    """Raised when an Entrez operation needs ids and none were given."""

    def __init__(self, message: str = "entrez: no id provided"):
        super().__init__(message)


class NoQueryError(NCBIClientError):
    """Raised when an Entrez search is attempted without a query term."""

    def __init__(self, message: str = "entrez: no query"):
        super().__init__(message)


class SearchError(NCBIClientError):
    """Base for terminal outcomes of a BLAST search."""

    def __init__(self, message: str, rid: Optional[str] = None):
        self.rid = rid
        super().__init__(message)


class SearchFailedError(SearchError):
    """The server reported the search as FAILED."""
    pass


class SearchExpiredError(SearchError):
    """The server no longer knows the RID (status UNKNOWN)."""
    pass


class NoHitsError(SearchError):
    """The search completed without any hits."""
    pass


class UnknownStatusError(SearchError):
    """The server returned a status value this client does not recognise."""

    def __init__(self, message: str, rid: Optional[str] = None, status: Optional[str] = None):
        self.status = status
        super().__init__(message, rid=rid)


class RetriesExceededError(SearchError):
    """The retry budget ran out before results could be fetched."""
    pass
