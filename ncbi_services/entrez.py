import logging
import xml.etree.ElementTree as ET
from logging import Logger
from typing import Any, Callable, Dict, List, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from .config import (
    DEFAULT_ENTREZ_DB,
    ENTREZ_RATE_LIMIT,
    ENTREZ_WITH_API_KEY_RATE_LIMIT,
    EUTILS_BASE_URL,
)
from .exceptions import APIError, NoIdProvidedError, NoQueryError, ValidationError
from .models import (
    DbInfo,
    DbLink,
    DocumentSummary,
    EInfoResult,
    ELinkResult,
    ESearchResult,
    ESpellResult,
    ESummaryResult,
    FieldInfo,
    History,
    Link,
    LinkSet,
    LinkSetDb,
    LinkSetDbHistory,
    Replacement,
    SummaryItem,
    Translation,
    Warnings,
)
from .params import EntrezParameters
from .ratelimit import RateGate, shared_gate
from .transport import ServiceEndpoint
from .translation import parse_translation_stack

logger: Logger = logging.getLogger(__name__)


def _texts(root: ET.Element, path: str) -> List[str]:
    return [(e.text or "").strip() for e in root.findall(path)]


def _text(root: ET.Element, path: str) -> Optional[str]:
    elem = root.find(path)
    if elem is None:
        return None
    return (elem.text or "").strip()


def _parse_xml(xml_text: str, program: str) -> ET.Element:
    try:
        return ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ValidationError(f"entrez: malformed {program} response: {e}") from e


def _parse_history(root: ET.Element) -> Optional[History]:
    query_key = _text(root, "QueryKey")
    webenv = _text(root, "WebEnv")
    if query_key is None and webenv is None:
        return None
    try:
        return History(query_key=int(query_key or 0), webenv=webenv or "")
    except ValueError as e:
        raise ValidationError(f"entrez: bad QueryKey {query_key!r}") from e


def parse_esearch(xml_text: str, db: str = DEFAULT_ENTREZ_DB) -> ESearchResult:
    """
    Parse an ESearch XML response.

    Raises:
        ValidationError: If the response is malformed
    """
    root = _parse_xml(xml_text, "ESearch")
    if root.tag != "eSearchResult":
        raise ValidationError(f"entrez: unexpected root element {root.tag!r}")

    stack_elem = root.find("TranslationStack")
    warnings_elem = root.find("WarningList")

    try:
        return ESearchResult(
            database=db,
            count=_text(root, "Count") or 0,
            retmax=_text(root, "RetMax") or 0,
            retstart=_text(root, "RetStart") or 0,
            history=_parse_history(root),
            idlist=_texts(root, "IdList/Id"),
            translation_set=[
                Translation(source=_text(t, "From") or "", target=_text(t, "To") or "")
                for t in root.findall("TranslationSet/Translation")
            ],
            translation_stack=(
                parse_translation_stack(stack_elem) if stack_elem is not None else None
            ),
            query_translation=_text(root, "QueryTranslation"),
            error=_text(root, "ERROR"),
            phrases_not_found=_texts(root, "ErrorList/PhraseNotFound"),
            fields_not_found=_texts(root, "ErrorList/FieldNotFound"),
            warnings=(
                Warnings(
                    phrases_ignored=_texts(warnings_elem, "PhraseIgnored"),
                    quoted_phrases_not_found=_texts(warnings_elem, "QuotedPhraseNotFound"),
                    output_messages=_texts(warnings_elem, "OutputMessage"),
                )
                if warnings_elem is not None
                else None
            ),
        )
    except (PydanticValidationError, ValueError) as e:
        raise ValidationError(f"entrez: invalid ESearch record: {e}") from e


def parse_epost(xml_text: str) -> History:
    """
    Parse an EPost XML response into the history it created.

    Raises:
        APIError: If the service reported an error
        ValidationError: If the response is malformed
    """
    root = _parse_xml(xml_text, "EPost")
    error = _text(root, "ERROR")
    if error:
        raise APIError(f"entrez: {error}")
    invalid = _texts(root, "InvalidIdList/Id")
    if invalid:
        logger.warning(f"EPost: {len(invalid)} invalid ids ignored: {invalid}")
    history = _parse_history(root)
    if history is None:
        raise ValidationError("entrez: EPost response has no history")
    return history


def _parse_flag(text: Optional[str]) -> bool:
    if text is None:
        return False
    if text not in ("Y", "N"):
        raise ValidationError(f"entrez: bad boolean {text!r}")
    return text == "Y"


def _parse_int(text: Optional[str], name: str) -> Optional[int]:
    if not text:
        return None
    try:
        return int(text)
    except ValueError as e:
        raise ValidationError(f"entrez: bad {name} {text!r}") from e


def _parse_summary_item(elem: ET.Element) -> SummaryItem:
    children = elem.findall("Item")
    return SummaryItem(
        name=elem.get("Name", ""),
        type=elem.get("Type", ""),
        value="" if children else (elem.text or "").strip(),
        items=[_parse_summary_item(child) for child in children],
    )


def parse_esummary(xml_text: str, db: str = DEFAULT_ENTREZ_DB) -> ESummaryResult:
    """
    Parse an ESummary XML response.

    ERROR elements are collected; they may accompany valid documents.

    Raises:
        ValidationError: If the response is malformed
    """
    root = _parse_xml(xml_text, "ESummary")
    if root.tag != "eSummaryResult":
        raise ValidationError(f"entrez: unexpected root element {root.tag!r}")
    return ESummaryResult(
        database=db,
        documents=[
            DocumentSummary(
                id=_text(doc, "Id") or "",
                items=[_parse_summary_item(item) for item in doc.findall("Item")],
            )
            for doc in root.findall("DocSum")
        ],
        errors=_texts(root, "ERROR"),
    )


def _parse_link_set(elem: ET.Element) -> LinkSet:
    return LinkSet(
        db_from=_text(elem, "DbFrom") or "",
        idlist=_texts(elem, "IdList/Id"),
        link_set_dbs=[
            LinkSetDb(
                db_to=_text(db, "DbTo") or "",
                link_name=_text(db, "LinkName") or "",
                links=[
                    Link(
                        id=_text(link, "Id") or "",
                        score=_parse_int(_text(link, "Score"), "Score"),
                    )
                    for link in db.findall("Link")
                ],
            )
            for db in elem.findall("LinkSetDb")
        ],
        link_set_db_histories=[
            LinkSetDbHistory(
                db_to=_text(h, "DbTo") or "",
                link_name=_text(h, "LinkName") or "",
                query_key=_parse_int(_text(h, "QueryKey"), "QueryKey"),
            )
            for h in elem.findall("LinkSetDbHistory")
        ],
        webenv=_text(elem, "WebEnv"),
        errors=_texts(elem, "ERROR"),
    )


def parse_elink(xml_text: str) -> ELinkResult:
    """
    Parse an ELink XML response.

    Raises:
        ValidationError: If the response is malformed
    """
    root = _parse_xml(xml_text, "ELink")
    if root.tag != "eLinkResult":
        raise ValidationError(f"entrez: unexpected root element {root.tag!r}")
    return ELinkResult(
        link_sets=[_parse_link_set(elem) for elem in root.findall("LinkSet")],
        errors=_texts(root, "ERROR"),
    )


def parse_espell(xml_text: str) -> ESpellResult:
    """
    Parse an ESpell XML response.

    Raises:
        APIError: If the service reported an error
        ValidationError: If the response is malformed
    """
    root = _parse_xml(xml_text, "ESpell")
    error = _text(root, "ERROR")
    if error:
        raise APIError(f"entrez: {error}")
    spelled = root.find("SpelledQuery")
    replacements = []
    if spelled is not None:
        for part in spelled:
            if part.tag in ("Original", "Replaced"):
                replacements.append(
                    Replacement(text=part.text or "", replaced=part.tag == "Replaced")
                )
    return ESpellResult(
        database=_text(root, "Database") or "",
        query=_text(root, "Query") or "",
        corrected_query=_text(root, "CorrectedQuery") or "",
        replacements=replacements,
    )


def _parse_field_info(elem: ET.Element) -> FieldInfo:
    return FieldInfo(
        name=_text(elem, "Name") or "",
        full_name=_text(elem, "FullName") or "",
        description=_text(elem, "Description") or "",
        term_count=_parse_int(_text(elem, "TermCount"), "TermCount") or 0,
        is_date=_parse_flag(_text(elem, "IsDate")),
        is_numerical=_parse_flag(_text(elem, "IsNumerical")),
        single_token=_parse_flag(_text(elem, "SingleToken")),
        hierarchy=_parse_flag(_text(elem, "Hierarchy")),
        is_hidden=_parse_flag(_text(elem, "IsHidden")),
        is_rangeable=_parse_flag(_text(elem, "IsRangable")),
        is_truncatable=_parse_flag(_text(elem, "IsTruncatable")),
    )


def parse_einfo(xml_text: str) -> EInfoResult:
    """
    Parse an EInfo XML response.

    Raises:
        APIError: If the service reported an error
        ValidationError: If the response is malformed
    """
    root = _parse_xml(xml_text, "EInfo")
    error = _text(root, "ERROR")
    if error:
        raise APIError(f"entrez: {error}")

    info = root.find("DbInfo")
    if info is None:
        return EInfoResult(dblist=_texts(root, "DbList/DbName"))
    return EInfoResult(
        dbinfo=DbInfo(
            db_name=_text(info, "DbName") or "",
            menu_name=_text(info, "MenuName") or "",
            description=_text(info, "Description") or "",
            count=_parse_int(_text(info, "Count"), "Count") or 0,
            last_update=_text(info, "LastUpdate") or "",
            fields=[_parse_field_info(f) for f in info.findall("FieldList/Field")],
            links=[
                DbLink(
                    name=_text(link, "Name") or "",
                    menu=_text(link, "Menu") or "",
                    description=_text(link, "Description") or "",
                    db_to=_text(link, "DbTo") or "",
                )
                for link in info.findall("LinkList/Link")
            ],
        )
    )


class EntrezClient:
    """
    Client for NCBI E-utilities with rate limiting.
    """

    def __init__(
        self,
        tool: str,
        email: str,
        api_key: Optional[str] = None,
        rate_gate: Optional[RateGate] = None,
        session: Optional[requests.Session] = None,
        base_url: str = EUTILS_BASE_URL,
        throttle_retries: int = 0,
    ):
        """
        Initialize Entrez client.

        Args:
            tool: Name of the calling application (no internal spaces)
            email: Email address for NCBI API (required by NCBI guidelines)
            api_key: Optional NCBI API key for higher rate limits
            rate_gate: Gate for all requests; defaults to the shared Entrez gate
            session: Optional requests session shared by all E-utilities
            base_url: E-utilities base URL
            throttle_retries: Attempts to repeat a request answered with
                HTTP 429; zero raises RateLimitError at once
        """
        self.tool = tool
        self.email = email
        self.api_key = api_key

        # Set rate limit based on API key availability
        if rate_gate is None:
            if api_key:
                rate_gate = shared_gate("entrez-api-key", ENTREZ_WITH_API_KEY_RATE_LIMIT)
            else:
                rate_gate = shared_gate("entrez", ENTREZ_RATE_LIMIT)
        self.rate_gate = rate_gate

        self.session = session or requests.Session()
        self._endpoints: Dict[str, ServiceEndpoint] = {
            program: ServiceEndpoint(
                f"{base_url}{program}",
                rate_gate,
                tool=tool,
                email=email,
                api_key=api_key,
                session=self.session,
                retries=throttle_retries,
            )
            for program in (
                "esearch.fcgi",
                "efetch.fcgi",
                "epost.fcgi",
                "esummary.fcgi",
                "elink.fcgi",
                "espell.fcgi",
                "einfo.fcgi",
            )
        }

        logger.info(
            f"Initialized Entrez client (rate_limit={rate_gate.interval}s, "
            f"has_api_key={api_key is not None})"
        )

    def _call(self, program: str, params: Dict[str, Any]) -> str:
        return self._endpoints[program].call(params)

    def search(
        self,
        db: str,
        term: str,
        params: Optional[EntrezParameters] = None,
        history: Optional[History] = None,
    ) -> ESearchResult:
        """
        Search an NCBI database using ESearch.

        If history is given the search is stored on the history server; a
        non-empty webenv and non-zero query_key are passed along.

        Raises:
            NoQueryError: If term is empty
        """
        if not term:
            raise NoQueryError()

        v = params.to_params() if params is not None else {}
        v["db"] = db or DEFAULT_ENTREZ_DB
        v["term"] = term
        v["retmode"] = "xml"
        if history is not None:
            v["usehistory"] = "y"
            if history.webenv:
                v["webenv"] = history.webenv
                if history.query_key:
                    v["query_key"] = str(history.query_key)

        result = parse_esearch(self._call("esearch.fcgi", v), db=v["db"])
        if result.error:
            raise APIError(f"entrez: {result.error}")

        logger.info(
            f"ESearch: db={result.database}, term='{term}', "
            f"found {result.count} results, "
            f"returned {len(result.idlist)} IDs"
        )
        return result

    def fetch(
        self,
        db: str,
        ids: Optional[List[str]] = None,
        params: Optional[EntrezParameters] = None,
        history: Optional[History] = None,
    ) -> str:
        """
        Fetch full records from NCBI database using EFetch.

        Raises:
            NoIdProvidedError: If neither ids nor history were given
        """
        if not ids and history is None:
            raise NoIdProvidedError()

        v = params.to_params() if params is not None else {}
        if db:
            v["db"] = db
        if ids:
            v["id"] = ",".join(str(id_) for id_ in ids)
        if history is not None:
            if history.webenv:
                v["webenv"] = history.webenv
            if history.query_key:
                v["query_key"] = str(history.query_key)

        data = self._call("efetch.fcgi", v)

        logger.info(
            f"EFetch: db={db}, fetched {len(ids or [])} records, size={len(data)} bytes"
        )
        return data

    def fetch_batch(
        self,
        db: str,
        ids: List[str],
        batch_size: int = 100,
        params: Optional[EntrezParameters] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> List[str]:
        """
        Fetch records in batches with progress tracking.
        """
        if not ids:
            raise NoIdProvidedError()
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if batch_size > 500:
            logger.warning(
                f"Batch size {batch_size} exceeds recommended max of 500"
            )

        results: List[str] = []
        num_batches = (len(ids) + batch_size - 1) // batch_size

        logger.info(
            f"Starting batch fetch: {len(ids)} IDs in {num_batches} batches"
        )

        for i in range(0, len(ids), batch_size):
            batch = ids[i : i + batch_size]
            batch_num = i // batch_size + 1

            logger.debug(f"Fetching batch {batch_num}/{num_batches}")

            results.append(self.fetch(db=db, ids=batch, params=params))

            if progress_callback:
                progress_callback(batch_num, num_batches)

        logger.info(f"Completed batch fetch: {num_batches} batches")
        return results

    def post(
        self,
        db: str,
        ids: List[str],
        history: Optional[History] = None,
    ) -> History:
        """
        Upload ids to the history server using EPost.

        If history has a webenv the ids are added to that environment.

        Raises:
            NoIdProvidedError: If ids is empty
        """
        if not ids:
            raise NoIdProvidedError()

        v = {"id": ",".join(str(id_) for id_ in ids)}
        if db:
            v["db"] = db
        if history is not None and history.webenv:
            v["webenv"] = history.webenv

        result = parse_epost(self._call("epost.fcgi", v))
        logger.info(
            f"EPost: db={db}, posted {len(ids)} IDs, query_key={result.query_key}"
        )
        return result

    def summary(
        self,
        db: str,
        ids: Optional[List[str]] = None,
        params: Optional[EntrezParameters] = None,
        history: Optional[History] = None,
    ) -> ESummaryResult:
        """
        Get document summaries using ESummary.

        A history is used only when both its webenv and query_key are set.

        Raises:
            NoIdProvidedError: If no ids were given and history is incomplete
            APIError: If the service returned only errors
        """
        use_history = history is not None and bool(history.webenv) and bool(history.query_key)
        if not ids and not use_history:
            raise NoIdProvidedError()

        v = params.to_params() if params is not None else {}
        v["db"] = db or DEFAULT_ENTREZ_DB
        if ids:
            v["id"] = ",".join(str(id_) for id_ in ids)
        if use_history:
            v["webenv"] = history.webenv
            v["query_key"] = str(history.query_key)

        result = parse_esummary(self._call("esummary.fcgi", v), db=v["db"])
        if result.errors and not result.documents:
            raise APIError(f"entrez: {'; '.join(result.errors)}")
        for error in result.errors:
            logger.warning(f"ESummary: {error}")

        logger.info(f"ESummary: db={result.database}, {len(result.documents)} documents")
        return result

    def link(
        self,
        db_from: str,
        db: str,
        ids: Optional[List[str]] = None,
        cmd: Optional[str] = None,
        term: Optional[str] = None,
        params: Optional[EntrezParameters] = None,
        history: Optional[History] = None,
        separate: bool = False,
    ) -> ELinkResult:
        """
        Find related records using ELink.

        With separate=True each id is sent as its own id parameter and gets
        its own LinkSet; otherwise the ids are linked as one set.

        Raises:
            NoIdProvidedError: If no ids were given and history is incomplete
            APIError: If the service reported a top level error
        """
        use_history = history is not None and bool(history.webenv) and bool(history.query_key)
        if not ids and not use_history:
            raise NoIdProvidedError()

        v: Dict[str, Any] = params.to_params() if params is not None else {}
        if ids:
            if separate:
                v["id"] = [str(id_) for id_ in ids]
            else:
                v["id"] = ",".join(str(id_) for id_ in ids)
        if db:
            v["db"] = db
        if db_from:
            v["dbfrom"] = db_from
        if cmd:
            v["cmd"] = cmd
        if term:
            v["term"] = term
        if use_history:
            v["webenv"] = history.webenv
            v["query_key"] = str(history.query_key)

        result = parse_elink(self._call("elink.fcgi", v))
        if result.errors:
            raise APIError(f"entrez: {'; '.join(result.errors)}")

        logger.info(f"ELink: {db_from} -> {db}, {len(result.link_sets)} link sets")
        return result

    def spell(self, db: str, term: str) -> ESpellResult:
        """
        Get spelling suggestions for a query using ESpell.

        Raises:
            NoQueryError: If term is empty
        """
        if not term:
            raise NoQueryError()

        v = {"term": term}
        if db:
            v["db"] = db
        result = parse_espell(self._call("espell.fcgi", v))
        logger.info(f"ESpell: '{term}' -> '{result.corrected_query}'")
        return result

    def info(self, db: Optional[str] = None) -> EInfoResult:
        """
        Get database statistics using EInfo.

        Without db the names of all Entrez databases are returned.
        """
        v = {"db": db} if db else {}
        result = parse_einfo(self._call("einfo.fcgi", v))
        if result.dbinfo is not None:
            logger.info(
                f"EInfo: db={result.dbinfo.db_name}, {result.dbinfo.count} records, "
                f"{len(result.dbinfo.fields)} fields"
            )
        else:
            logger.info(f"EInfo: {len(result.dblist)} databases")
        return result

    def close(self):
        """Close the HTTP session."""
        self.session.close()
        logger.info("Closed Entrez client session")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
