"""
Parsing of the QBlastInfo blocks in BLAST server responses.

The BLAST URL API reports request identifiers and search status inside an
HTML comment that starts with "QBlastInfoBegin", one key/value pair per line:

    <!--QBlastInfoBegin
        RID = 954517013-7639-11119
        RTOE = 207
    QBlastInfoEnd
    -->

Submission blocks separate keys and values with " = ", SearchInfo blocks with
a bare "=".
"""

from html.parser import HTMLParser
from typing import Dict, List, Optional

QBLAST_INFO_MARKER = "QBlastInfoBegin"


class _BlastPageParser(HTMLParser):
    """Collects comments and text nodes from a BLAST HTML page."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.comments: List[str] = []
        self.text: List[str] = []

    def handle_comment(self, data):
        self.comments.append(data)

    def handle_data(self, data):
        if data.strip():
            self.text.append(data.strip())


def _parse_page(body: str) -> _BlastPageParser:
    parser = _BlastPageParser()
    parser.feed(body)
    parser.close()
    return parser


def find_error_message(body: str) -> Optional[str]:
    """Return the server's "Message ID#... Error: ..." banner, if present."""
    for text in _parse_page(body).text:
        if text.startswith("Message ID") and "Error:" in text:
            return text
    return None


def first_comment(body: str) -> Optional[str]:
    """Return the text of the first HTML comment in body."""
    comments = _parse_page(body).comments
    return comments[0] if comments else None


def parse_qblast_info(body: str, separator: str = "=") -> Optional[Dict[str, str]]:
    """
    Extract the key/value pairs of all QBlastInfo comments in body.

    SearchInfo pages spread their fields over several blocks. Lines that do
    not split into exactly one key and one value on separator are ignored;
    a key seen again replaces the earlier value. Returns None when the body
    has no QBlastInfo comment.
    """
    info: Optional[Dict[str, str]] = None
    for comment in _parse_page(body).comments:
        if QBLAST_INFO_MARKER not in comment:
            continue
        if info is None:
            info = {}
        for line in comment.splitlines():
            parts = line.strip().split(separator)
            if len(parts) != 2:
                continue
            info[parts[0].strip()] = parts[1].strip()
    return info
