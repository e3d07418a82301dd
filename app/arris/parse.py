"""
Parsing functions that pull the bonded channel tables out of the connection status page HTML.
    Written against the SB family `cmconnectionstatus.html` page; everything here is positional so
    if a firmware update moves things around, this is the file to fix.

"""

import re
from collections.abc import Callable

import structlog
from arris.models import DownstreamChannel, UpstreamChannel
from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag
from err.exceptions import FormatError, NotFoundError
from util.const import DOWNSTREAM_TABLE_TITLE, LOGIN_PAGE_MARKER, UPSTREAM_TABLE_TITLE

log = structlog.get_logger(__name__)


def _strip_units(raw: str) -> str:
    """'363000000 Hz' -> '363000000'. Harmless if there's no space."""
    return raw.split(" ")[0]


# int()/float() are far more forgiving than the firmware's output ever is ('1_000', full-width digits ...)
#   so anything that isn't plain ASCII digits is treated as a changed page, not a number.
INT_RE = re.compile(r"[+-]?[0-9]+")
FLOAT_RE = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def _as_int(raw: str) -> int:
    value = _strip_units(raw)
    if INT_RE.fullmatch(value) is None:
        raise ValueError(f"not an integer: {value!r}")
    return int(value)


def _as_float(raw: str) -> float:
    value = _strip_units(raw)
    if FLOAT_RE.fullmatch(value) is None:
        raise ValueError(f"not a number: {value!r}")
    return float(value)


# It's not trivial to get the headings out of the page (see note below) so we just index by position.
# Each entry is the column header as it appears on the page and the function that turns the raw cell
#   text into the value for the matching record field. Order here == order of the record's fields.
##
DS_COLUMNS: tuple[tuple[str, Callable[[str], str | int | float]], ...] = (
    ("Channel ID", str),
    ("Lock Status", str),
    ("Modulation", str),
    ("Frequency", _as_int),
    ("Power", _as_float),
    ("SNR/MER", _as_float),
    ("Corrected", _as_int),
    ("Uncorrectables", _as_int),
)

US_COLUMNS: tuple[tuple[str, Callable[[str], str | int | float]], ...] = (
    ("Channel", str),
    ("Channel ID", str),
    ("Lock Status", str),
    ("US Channel Type", str),
    ("Frequency", _as_int),
    ("Width", _as_int),
    ("Power", _as_float),
)


def _is_text_node(node: PageElement) -> bool:
    # Comments, doctypes, CDATA ... etc are all NavigableString subclasses; we only want real text.
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def find_text_node(tree: Tag, text: str) -> NavigableString | None:
    """Depth first (children before siblings) search for the first text node that is exactly `text`.

    No stripping or case folding; the page is generated by firmware so the text is stable.
    """
    for node in tree.descendants:
        if _is_text_node(node) and str(node) == text:
            return node
    return None


def is_login_page(soup: BeautifulSoup) -> bool:
    """Check if the page is (or contains) the login form"""
    return find_text_node(soup, LOGIN_PAGE_MARKER) is not None


# Of course the modem returns INVALID html.
# Here's a snippet of the HTML that we're trying to parse:
#                   <tr>
#                     <th colspan=8><strong>Downstream Bonded Channels</strong></th>
#                   </tr>
#                   <td><strong>Channel ID</strong></td>
#                   <td><strong>Lock Status</strong></td>
#                   ...
#                   </tr>
#                   <tr align='left'>
#                     <td>4</td>
#                     <td>Locked</td>
#                   ...
#
# Notice that the opening `<tr>` is closed ... TWICE?
# The stray header cells end up hanging off the table, so the headings are useless to us.
# What IS reliable is that every data row is a `<tr>` with exactly one attribute: align="left".
#
# From the heading text we walk up three levels to get to the rows:
#   text -> strong -> th -> tr: the heading row; data rows are that row's following siblings
#   text -> th -> tr -> table:  heading is not wrapped; data rows are the table's children
# Either way, only rows with the align="left" attribute are considered.


def _candidate_rows(title: NavigableString) -> list[PageElement]:
    container = title
    for _ in range(3):
        container = container.parent
        if container is None:
            raise NotFoundError(f"Heading '{title}' is not nested inside a table")
    if container.name == "tr":
        return [container, *container.next_siblings]
    return list(container.children)


def _is_data_row(row: PageElement) -> bool:
    return isinstance(row, Tag) and row.attrs == {"align": "left"}


def _extract_table_rows(soup: BeautifulSoup, table_section_title: str) -> list[list[str]]:
    title = find_text_node(soup, table_section_title)
    if title is None:
        raise NotFoundError(f"Unable to find '{table_section_title}' table")

    data_rows = []
    for row in _candidate_rows(title):
        if not _is_data_row(row):
            continue
        cols = [col for col in row.children if isinstance(col, Tag) and col.name == "td"]
        data_rows.append([col.get_text().strip() for col in cols])

    log.debug("Rows", title=table_section_title, count=len(data_rows))
    return data_rows


def _convert_row(
    row_idx: int,
    row: list[str],
    columns: tuple[tuple[str, Callable[[str], str | int | float]], ...],
) -> list[str | int | float]:
    if len(row) != len(columns):
        raise FormatError(
            f"Unexpected number of columns for row {row_idx}: expected {len(columns)}, got {len(row)}",
            payload=row,
        )
    values = []
    for (column_name, convert), raw in zip(columns, row):
        try:
            values.append(convert(raw))
        except ValueError as ve:
            raise FormatError(
                f"Failure to convert raw value '{raw}' in column '{column_name}' of row {row_idx}",
                payload=row,
            ) from ve
    return values


def parse_downstream(soup: BeautifulSoup) -> list[DownstreamChannel]:
    """All rows of the downstream table, in page order. Any bad row fails the whole table."""
    rows = _extract_table_rows(soup, DOWNSTREAM_TABLE_TITLE)
    return [DownstreamChannel(*_convert_row(idx, row, DS_COLUMNS)) for idx, row in enumerate(rows)]


def parse_upstream(soup: BeautifulSoup) -> list[UpstreamChannel]:
    """All rows of the upstream table, in page order. Any bad row fails the whole table."""
    rows = _extract_table_rows(soup, UPSTREAM_TABLE_TITLE)
    return [UpstreamChannel(*_convert_row(idx, row, US_COLUMNS)) for idx, row in enumerate(rows)]
