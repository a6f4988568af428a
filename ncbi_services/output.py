"""
Pydantic models for BLAST XML output.

Covers the parts of the NCBI_BlastOutput DTD that callers normally inspect:
the run summary, iterations, hits and their high-scoring segment pairs.
"""

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError

logger = logging.getLogger(__name__)


class Hsp(BaseModel):
    """A high-scoring segment pair."""
    model_config = ConfigDict(extra='allow')

    num: int = Field(..., description="HSP number within the hit")
    bit_score: float = Field(..., description="Bit score")
    score: float = Field(..., description="Raw score")
    evalue: float = Field(..., description="Expect value")
    query_from: int = 0
    query_to: int = 0
    hit_from: int = 0
    hit_to: int = 0
    identity: Optional[int] = None
    positive: Optional[int] = None
    gaps: Optional[int] = None
    align_len: Optional[int] = None
    qseq: str = ""
    hseq: str = ""
    midline: Optional[str] = None


class Hit(BaseModel):
    """A database sequence matched by the query."""
    model_config = ConfigDict(extra='allow')

    num: int = Field(..., description="Hit number")
    id: str = Field(..., description="SeqId of the subject")
    definition: str = Field(default="", description="Definition line of the subject")
    accession: str = Field(default="", description="Accession of the subject")
    length: int = Field(default=0, description="Length of the subject")
    hsps: List[Hsp] = Field(default_factory=list)

    @property
    def best_evalue(self) -> Optional[float]:
        """Lowest expect value over the hit's HSPs."""
        if not self.hsps:
            return None
        return min(hsp.evalue for hsp in self.hsps)


class Iteration(BaseModel):
    """One iteration of a (possibly iterated) BLAST search."""
    model_config = ConfigDict(extra='allow')

    num: int
    query_id: Optional[str] = None
    query_def: Optional[str] = None
    query_len: Optional[int] = None
    hits: List[Hit] = Field(default_factory=list)
    message: Optional[str] = None


class BlastOutput(BaseModel):
    """Validated result of a BLAST Get request in XML format."""
    model_config = ConfigDict(extra='allow')

    program: str
    version: str = ""
    reference: str = ""
    database: str = ""
    query_id: str = ""
    query_def: str = ""
    query_len: int = 0
    iterations: List[Iteration] = Field(default_factory=list)

    @property
    def hits(self) -> List[Hit]:
        """Hits of the final iteration."""
        return self.iterations[-1].hits if self.iterations else []


def _text(elem: ET.Element, tag: str) -> Optional[str]:
    child = elem.find(tag)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _fields(elem: ET.Element, prefix: str, names: dict) -> dict:
    """Collect child texts named prefix + tag into a dict keyed by field name."""
    values = {}
    for tag, field in names.items():
        text = _text(elem, prefix + tag)
        if text is not None:
            values[field] = text
    return values


_HSP_FIELDS = {
    "num": "num",
    "bit-score": "bit_score",
    "score": "score",
    "evalue": "evalue",
    "query-from": "query_from",
    "query-to": "query_to",
    "hit-from": "hit_from",
    "hit-to": "hit_to",
    "identity": "identity",
    "positive": "positive",
    "gaps": "gaps",
    "align-len": "align_len",
    "qseq": "qseq",
    "hseq": "hseq",
    "midline": "midline",
}

_HIT_FIELDS = {
    "num": "num",
    "id": "id",
    "def": "definition",
    "accession": "accession",
    "len": "length",
}

_ITERATION_FIELDS = {
    "iter-num": "num",
    "query-ID": "query_id",
    "query-def": "query_def",
    "query-len": "query_len",
    "message": "message",
}

_OUTPUT_FIELDS = {
    "program": "program",
    "version": "version",
    "reference": "reference",
    "db": "database",
    "query-ID": "query_id",
    "query-def": "query_def",
    "query-len": "query_len",
}


def _parse_iteration(it: ET.Element) -> Iteration:
    hits = []
    for hit in it.findall("Iteration_hits/Hit"):
        hsps = [
            Hsp(**_fields(hsp, "Hsp_", _HSP_FIELDS))
            for hsp in hit.findall("Hit_hsps/Hsp")
        ]
        hits.append(Hit(hsps=hsps, **_fields(hit, "Hit_", _HIT_FIELDS)))
    return Iteration(hits=hits, **_fields(it, "Iteration_", _ITERATION_FIELDS))


def parse_blast_output(xml_text: str) -> BlastOutput:
    """
    Parse a BLAST XML report.

    Raises:
        ValidationError: If the document is not well formed BLAST XML
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ValidationError(f"blast: malformed XML output: {e}") from e

    if root.tag != "BlastOutput":
        raise ValidationError(f"blast: unexpected root element {root.tag!r}")

    try:
        output = BlastOutput(
            iterations=[_parse_iteration(it) for it in root.findall("BlastOutput_iterations/Iteration")],
            **_fields(root, "BlastOutput_", _OUTPUT_FIELDS),
        )
    except PydanticValidationError as e:
        raise ValidationError(f"blast: invalid output record: {e}") from e

    logger.debug(
        f"Parsed BLAST output: program={output.program}, "
        f"{len(output.iterations)} iterations, {len(output.hits)} hits"
    )
    return output
