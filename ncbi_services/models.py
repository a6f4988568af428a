"""
Pydantic models for Entrez E-utility responses.

These models provide type safety and automatic validation for API interactions,
with graceful handling of missing or malformed fields common in scientific data.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict

from .translation import StackNode, build_ast


class History(BaseModel):
    """
    An Entrez history server web environment and query key.

    The zero values of query_key and webenv mean unset.
    """
    query_key: int = 0
    webenv: str = ""


class Translation(BaseModel):
    """One query term and what ESearch translated it to."""
    source: str = Field(..., description="Term as given in the query")
    target: str = Field(..., description="Term as ESearch expanded it")


class Warnings(BaseModel):
    """Warnings reported by ESearch."""
    phrases_ignored: List[str] = Field(default_factory=list)
    quoted_phrases_not_found: List[str] = Field(default_factory=list)
    output_messages: List[str] = Field(default_factory=list)


class ESearchResult(BaseModel):
    """
    Validated response from NCBI ESearch.

    Provides type-safe access to search results with automatic validation
    and graceful degradation for optional fields.
    """
    model_config = ConfigDict(extra='allow')  # Allow additional fields from API

    database: str = Field(..., description="Database that was searched")
    count: int = Field(default=0, description="Total number of matching records")
    retmax: int = Field(default=0, description="Number of IDs returned")
    retstart: int = Field(default=0, description="Starting index in result set")
    history: Optional[History] = Field(default=None, description="History server result")
    idlist: List[str] = Field(default_factory=list, description="List of matching IDs")
    translation_set: List[Translation] = Field(
        default_factory=list,
        description="Query translation information"
    )
    translation_stack: Optional[List[StackNode]] = Field(
        default=None,
        description="Translation stack for complex queries"
    )
    query_translation: Optional[str] = Field(
        default=None,
        description="Human-readable query translation"
    )
    error: Optional[str] = Field(default=None, description="ERROR element, if any")
    phrases_not_found: List[str] = Field(default_factory=list)
    fields_not_found: List[str] = Field(default_factory=list)
    warnings: Optional[Warnings] = Field(
        default=None,
        description="Warnings about query terms"
    )

    @field_validator('count', 'retmax', 'retstart', mode='before')
    @classmethod
    def coerce_to_int(cls, v):
        """Convert string numbers to integers (NCBI returns them as text)."""
        if isinstance(v, str):
            return int(v)
        return v

    @property
    def has_results(self) -> bool:
        """Check if search returned any results."""
        return self.count > 0 and len(self.idlist) > 0

    @property
    def has_more_results(self) -> bool:
        """Check if there are more results beyond what was returned."""
        return (self.retstart + self.retmax) < self.count

    def ast(self, strict: bool = False) -> Optional[StackNode]:
        """Return the query tree encoded by the translation stack."""
        if not self.translation_stack:
            return None
        return build_ast(self.translation_stack, strict=strict)


class SummaryItem(BaseModel):
    """
    One Item of an ESummary document.

    List and Structure items carry their members in items instead of a
    value.
    """
    name: str
    type: str = ""
    value: str = ""
    items: List["SummaryItem"] = Field(default_factory=list)


class DocumentSummary(BaseModel):
    """An ESummary DocSum record."""
    id: str
    items: List[SummaryItem] = Field(default_factory=list)

    def get(self, name: str) -> Optional[SummaryItem]:
        """Return the first top level item called name, if any."""
        for item in self.items:
            if item.name == name:
                return item
        return None


class ESummaryResult(BaseModel):
    """Validated response from NCBI ESummary."""
    database: str
    documents: List[DocumentSummary] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class Link(BaseModel):
    """A linked record and its relatedness score, when given."""
    id: str
    score: Optional[int] = None


class LinkSetDb(BaseModel):
    """Links from a LinkSet into one target database."""
    db_to: str = ""
    link_name: str = ""
    links: List[Link] = Field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return [link.id for link in self.links]


class LinkSetDbHistory(BaseModel):
    """Links stored on the history server by cmd=neighbor_history."""
    db_to: str = ""
    link_name: str = ""
    query_key: Optional[int] = None


class LinkSet(BaseModel):
    """One LinkSet of an ELink response."""
    db_from: str = ""
    idlist: List[str] = Field(default_factory=list)
    link_set_dbs: List[LinkSetDb] = Field(default_factory=list)
    link_set_db_histories: List[LinkSetDbHistory] = Field(default_factory=list)
    webenv: Optional[str] = None
    errors: List[str] = Field(default_factory=list)


class ELinkResult(BaseModel):
    """Validated response from NCBI ELink."""
    link_sets: List[LinkSet] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class Replacement(BaseModel):
    """A piece of a spelled query; replaced is True for corrected text."""
    text: str
    replaced: bool = False


class ESpellResult(BaseModel):
    """Validated response from NCBI ESpell."""
    database: str = ""
    query: str = ""
    corrected_query: str = ""
    replacements: List[Replacement] = Field(default_factory=list)

    @property
    def has_correction(self) -> bool:
        return bool(self.corrected_query) and self.corrected_query != self.query


class FieldInfo(BaseModel):
    """A searchable field of an Entrez database."""
    name: str
    full_name: str = ""
    description: str = ""
    term_count: int = 0
    is_date: bool = False
    is_numerical: bool = False
    single_token: bool = False
    hierarchy: bool = False
    is_hidden: bool = False
    is_rangeable: bool = False
    is_truncatable: bool = False


class DbLink(BaseModel):
    """A link an Entrez database offers to another database."""
    name: str
    menu: str = ""
    description: str = ""
    db_to: str = ""


class DbInfo(BaseModel):
    """Statistics and field list of one Entrez database."""
    db_name: str
    menu_name: str = ""
    description: str = ""
    count: int = 0
    last_update: str = ""
    fields: List[FieldInfo] = Field(default_factory=list)
    links: List[DbLink] = Field(default_factory=list)


class EInfoResult(BaseModel):
    """
    Validated response from NCBI EInfo.

    Without a database EInfo lists the database names; with one it
    describes that database.
    """
    dblist: List[str] = Field(default_factory=list)
    dbinfo: Optional[DbInfo] = None
