"""Configuration for the NCBI BLAST and Entrez service clients."""

# NCBI BLAST URL API endpoint
BLAST_URL = "https://blast.ncbi.nlm.nih.gov/Blast.cgi"

# NCBI E-utilities base URL
EUTILS_BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/"

# Rate limiting: the BLAST usage policy allows one request every 3 seconds,
# and no more than one status poll per RID per minute.
BLAST_RATE_LIMIT = 3.0  # seconds between BLAST requests
RID_POLL_LIMIT = 60.0  # seconds between polls of the same RID

# Entrez allows 3 requests/second without API key, 10/sec with key
ENTREZ_RATE_LIMIT = 1.0 / 3.0  # seconds between requests
ENTREZ_WITH_API_KEY_RATE_LIMIT = 0.1  # seconds between requests

# Requests whose URL would reach this length are sent as POST instead of GET
GET_METHOD_LIMIT = 2048

# Request timeout
REQUEST_TIMEOUT = 10  # seconds

# User agent (NCBI requests descriptive user agents)
USER_AGENT = "NCBI-Services/0.1.0 (Research)"

# Default Entrez database when none is given
DEFAULT_ENTREZ_DB = "pubmed"
