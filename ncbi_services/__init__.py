"""Rate-limited clients for the NCBI BLAST and Entrez services."""

from .blast import BlastClient, JobHandle, SearchState, SearchStatus, run_blast_search
from .entrez import EntrezClient
from .params import EntrezParameters, GetParameters, PutParameters
from .ratelimit import RateGate, shared_gate
from .translation import Operator, Term, build_ast, flatten

__version__ = "0.1.0"
