"""
Pydantic models for optional NCBI request parameters.

Each field carries the service's parameter name as its alias. Only values
that differ from the field default are sent, so an empty model adds nothing
to a request.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def _format_value(value: Any) -> str:
    """Render a parameter value the way the NCBI URL APIs expect it."""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        text = repr(value)
        return text[:-2] if text.endswith(".0") else text
    if isinstance(value, tuple):
        return " ".join(str(v) for v in value)
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return str(value)


class ServiceParameters(BaseModel):
    """Base for parameter models that marshal onto a URL query."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def to_params(self) -> Dict[str, str]:
        """
        Return the non-default fields keyed by their service parameter name.

        Booleans defaulting to False are sent as "yes" when set; booleans
        defaulting to None are tri-state and are sent as "yes" or "no".
        """
        params: Dict[str, str] = {}
        for name, field in type(self).model_fields.items():
            value = getattr(self, name)
            if value is None or value == field.default:
                continue
            if isinstance(value, (str, list)) and not value:
                continue
            params[field.alias or name] = _format_value(value)
        return params


class PutParameters(ServiceParameters):
    """Optional parameters for a BLAST Put (submission) request."""

    auto_format: str = Field(default="", alias="AUTO_FORMAT")
    composition_based_statistics: bool = Field(default=False, alias="COMPOSITION_BASED_STATISTICS")
    database: str = Field(default="", alias="DATABASE")
    db_genetic_code: Optional[List[int]] = Field(default=None, alias="DB_GENETIC_CODE")
    end_points: bool = Field(default=False, alias="ENDPOINTS")
    entrez_query: str = Field(default="", alias="ENTREZ_QUERY")
    expect: Optional[float] = Field(default=None, alias="EXPECT")
    filter: str = Field(default="", alias="FILTER")
    gap_costs: Optional[Tuple[int, int]] = Field(default=None, alias="GAPCOSTS")
    genetic_code: Optional[List[int]] = Field(default=None, alias="GENETIC_CODE")
    hitlist_size: int = Field(default=0, alias="HITLIST_SIZE")
    i_thresh: float = Field(default=0.0, alias="I_THRESH")
    layout: str = Field(default="", alias="LAYOUT")
    lcase_mask: bool = Field(default=False, alias="LCASE_MASK")
    megablast: bool = Field(default=False, alias="MEGABLAST")
    matrix_name: str = Field(default="", alias="MATRIX_NAME")
    nucl_penalty: int = Field(default=0, alias="NUCL_PENALTY")
    nucl_reward: int = Field(default=0, alias="NUCL_REWARD")
    other_advanced: str = Field(default="", alias="OTHER_ADVANCED")
    perc_ident: int = Field(default=0, alias="PERC_IDENT")
    phi_pattern: str = Field(default="", alias="PHI_PATTERN")
    program: str = Field(default="", alias="PROGRAM")
    pssm: str = Field(default="", alias="PSSM")
    query_file: str = Field(default="", alias="QUERY_FILE")
    query_believe_defline: bool = Field(default=False, alias="QUERY_BELIEVE_DEFLINE")
    query_from: int = Field(default=0, alias="QUERY_FROM")
    query_to: int = Field(default=0, alias="QUERY_TO")
    results_file: bool = Field(default=False, alias="RESULTS_FILE")
    searchsp_eff: int = Field(default=0, alias="SEARCHSP_EFF")
    service: str = Field(default="", alias="SERVICE")
    threshold: int = Field(default=0, alias="THRESHOLD")
    ungapped_alignment: bool = Field(default=False, alias="UNGAPPED_ALIGNMENT")
    word_size: int = Field(default=0, alias="WORD_SIZE")


class GetParameters(ServiceParameters):
    """Optional parameters for a BLAST Get (result retrieval) request."""

    # Overridden with "XML" when results are parsed
    format_type: str = Field(default="", alias="FORMAT_TYPE")

    alignments: int = Field(default=0, alias="ALIGNMENTS")
    alignment_view: str = Field(default="", alias="ALIGNMENT_VIEW")
    descriptions: int = Field(default=0, alias="DESCRIPTIONS")
    entrez_links_new_window: bool = Field(default=False, alias="ENTREZ_LINKS_NEW_WINDOW")
    expect_low: float = Field(default=0.0, alias="EXPECT_LOW")
    expect_high: float = Field(default=0.0, alias="EXPECT_HIGH")
    format_entrez_query: str = Field(default="", alias="FORMAT_ENTREZ_QUERY")
    format_object: str = Field(default="", alias="FORMAT_OBJECT")
    ncbi_gi: bool = Field(default=False, alias="NCBI_GI")
    results_file: bool = Field(default=False, alias="RESULTS_FILE")
    service: str = Field(default="", alias="SERVICE")
    show_overview: Optional[bool] = Field(default=None, alias="SHOW_OVERVIEW")


class EntrezParameters(ServiceParameters):
    """Optional parameters shared by the E-utility programs."""

    retmode: str = ""
    rettype: str = ""
    retstart: int = 0
    retmax: int = 0
    sort: str = ""
    strand: int = 0
    seqstart: int = 0
    seqstop: int = 0
    complexity: int = 0
    linkname: str = ""
    holding: str = ""
    datetype: str = ""
    reldate: str = ""
    mindate: str = ""
    maxdate: str = ""
