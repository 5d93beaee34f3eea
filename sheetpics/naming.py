"""
File naming for extracted images.

Default names come from the row an image belongs to ("Emp Name" first, then
"Name"), and every name handed out during one request goes through a
NameRegistry so duplicates get a numeric suffix in submission order.
"""
import logging
import re
from typing import Dict, Mapping, NamedTuple, Optional, Sequence, Set, Tuple

from .image_sniffer import extension_for_mime

logger = logging.getLogger(__name__)

HEADER_ROW = 1
EMP_NAME_HEADER = "emp name"
NAME_HEADER = "name"
IMAGE_HEADER_KEYWORDS = ("photo", "image")
EMBEDDED_EXTENSION = "jpg"

_NAME_EXT_RE = re.compile(r"^(.*)(\.[^.]+)$")
_INVALID_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


class HeaderColumns(NamedTuple):
    """Header lookup for one sheet. Column indices are 1-based."""
    emp_name_col: Optional[int]
    name_col: Optional[int]
    headers: Dict[int, str]

    def is_image_column(self, col: int) -> bool:
        header = self.headers.get(col, "")
        return any(keyword in header for keyword in IMAGE_HEADER_KEYWORDS)


def cell_text(value) -> Optional[str]:
    """Narrow a raw cell value to text, None for empty cells."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def find_header_columns(header_values: Sequence) -> HeaderColumns:
    """
    Scan a header row for the "Emp Name" and "Name" columns.

    Args:
        header_values: Cell values of row 1, first element is column 1

    Returns:
        HeaderColumns with lowercased header text per column
    """
    emp_name_col = None
    name_col = None
    headers = {}
    for col, value in enumerate(header_values, start=1):
        text = cell_text(value)
        if text is None:
            continue
        header = text.lower()
        headers[col] = header
        if header == EMP_NAME_HEADER:
            emp_name_col = col
        if header == NAME_HEADER:
            name_col = col
    return HeaderColumns(emp_name_col=emp_name_col, name_col=name_col, headers=headers)


def sanitize_name(name: str) -> str:
    """Strip characters that would create directories or invalid file names."""
    return _INVALID_CHARS_RE.sub("", name).strip()


def _column_value(row_values: Sequence, col: Optional[int]) -> Optional[str]:
    if not col or col <= 0 or col > len(row_values):
        return None
    value = row_values[col - 1]
    # Numeric 0 and False count as blank, like an empty cell
    if not isinstance(value, str) and not value:
        return None
    text = cell_text(value)
    if text is None or not text.strip():
        return None
    return sanitize_name(text) or None


def row_label(row_values: Sequence, columns: HeaderColumns, row: Optional[int]) -> Optional[str]:
    """Name hint for a data row: "Emp Name" value, then "Name" value."""
    if row is None or row <= HEADER_ROW:
        return None
    return _column_value(row_values, columns.emp_name_col) or _column_value(row_values, columns.name_col)


def embedded_default_name(label: Optional[str], row: Optional[int]) -> str:
    if label:
        return f"{label}.{EMBEDDED_EXTENSION}"
    return f"row_{row or 'x'}.{EMBEDDED_EXTENSION}"


def cell_default_name(label: Optional[str], row: int, col: int, mime_type: str,
                      mapping: Optional[Mapping[str, str]] = None) -> str:
    """
    Default name for a cell-encoded image.

    A mapping entry keyed by the raw cell name (cell_<row>_<col>.<ext>) takes
    precedence over the row label.
    """
    ext = extension_for_mime(mime_type)
    raw_name = f"cell_{row}_{col}.{ext}"
    if mapping:
        override = sanitize_name(mapping.get(raw_name) or "")
        if override:
            return override
    if label:
        return f"{label}.{ext}"
    return raw_name


def split_name(name: str) -> Tuple[str, str]:
    """Split "photo.jpg" into ("photo", ".jpg"); ext is "" when absent."""
    match = _NAME_EXT_RE.match(name)
    if match:
        return match.group(1), match.group(2)
    return name, ""


def replace_extension(name: str, ext: str) -> str:
    stem, _ = split_name(name)
    return f"{stem}.{ext}"


class NameRegistry:
    """Request-scoped record of handed-out names."""

    def __init__(self):
        self.counts: Dict[str, int] = {}
        self.issued: Set[str] = set()

    def register(self, candidate: str) -> str:
        """
        Return a unique name for candidate and record it.

        The first use of a stem keeps the candidate unchanged; the Nth use
        becomes "{stem}_{N}{ext}".
        """
        stem, ext = split_name(candidate)
        count = self.counts.get(stem, 0)
        self.counts[stem] = count + 1

        final_stem = stem
        if count > 0:
            final_stem = f"{stem}_{count + 1}"
        # A literal name like "x_2.jpg" may already have been issued as a suffix
        suffix = count + 1
        while final_stem in self.issued:
            suffix += 1
            final_stem = f"{stem}_{suffix}"

        self.issued.add(final_stem)
        name = f"{final_stem}{ext}"
        if name != candidate:
            logger.debug("Renamed duplicate %s -> %s", candidate, name)
        return name
