"""
Parsing (HTML -> structured records).

- Decodes raw response bytes (the catalog always answers in ISO-8859-1)
- Extracts EACH data row of the listing table as exactly ONE Course
- Detects the "Seuraava sivu" (next page) link
- Recovers the patient area pair from a course detail page

Important rules (DO NOT CHANGE):
- The listing table always has 2 header rows and 3 footer rows
- Unparseable dates / spot counts are recorded on the Course, never defaulted
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, PageElement, Tag

from kurssihaku.errors import FieldParseError, FragileMarkupError, MalformedPageError
from kurssihaku.model import Course, CourseDetails


SOURCE_ENCODING = "iso-8859-1"

HEADER_ROWS = 2
FOOTER_ROWS = 3
COURSE_CELLS = 9

NEXT_PAGE_TEXT = "Seuraava sivu"

# The description follows a comment like "<!-- Alueet, kuvaus -->" five nodes later.
AREA_DESCRIPTION_MARKER = "Alueet,"
AREA_DESCRIPTION_SIBLING_OFFSET = 5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def decode_page(raw: bytes) -> str:
    return raw.decode(SOURCE_ENCODING)


def make_soup(raw: bytes) -> BeautifulSoup:
    return BeautifulSoup(decode_page(raw), "html.parser")


def _cell_text(cell: Tag) -> str:
    return cell.get_text().strip()


def _name_cell_text(cell: Tag) -> str:
    # The course name is the link text; fall back to the whole cell if the link is missing
    anchor = cell.find("a")
    if anchor is None:
        return _cell_text(cell)
    return anchor.get_text().strip()


def parse_start_date(text: str) -> date:
    """
    Parse a 'DD.MM.YYYY' cell. Raises FieldParseError for anything else.
    """
    try:
        return datetime.strptime(text.strip(), "%d.%m.%Y").date()
    except ValueError:
        raise FieldParseError("start_date", text) from None


def parse_spots(text: str) -> int:
    """
    Parse the available-spots cell. Empty or non-numeric text raises FieldParseError.
    """
    raw = text.strip()
    if not (raw.isascii() and raw.isdigit()):
        raise FieldParseError("spots_available", text)
    return int(raw)


# ---------------------------------------------------------------------------
# Listing page parsing
# ---------------------------------------------------------------------------


def parse_course_row(row: Tag) -> Course:
    """
    Parses exactly one listing row into exactly one Course.
    """
    cells = row.find_all("td")
    if len(cells) < COURSE_CELLS:
        raise MalformedPageError(f"Listing row has {len(cells)} cells, expected {COURSE_CELLS}")

    errors: List[str] = []

    start_text = _cell_text(cells[6])
    start: Optional[date]
    try:
        start = parse_start_date(start_text)
    except FieldParseError as exc:
        start = None
        errors.append(exc.field_name)

    spots_text = _cell_text(cells[8])
    spots: Optional[int]
    try:
        spots = parse_spots(spots_text)
    except FieldParseError as exc:
        spots = None
        errors.append(exc.field_name)

    return Course(
        id=_cell_text(cells[0]),
        name=_name_cell_text(cells[1]),
        illness=_cell_text(cells[2]),
        target_group=_cell_text(cells[3]),
        kind=_cell_text(cells[4]),
        type=_cell_text(cells[5]),
        start_date=start,
        area=_cell_text(cells[7]),
        spots_available=spots,
        start_date_text=start_text,
        spots_text=spots_text,
        parse_errors=errors,
    )


def parse_listing_soup(soup: BeautifulSoup) -> List[Course]:
    table = soup.select_one("form > table")
    if table is None:
        raise MalformedPageError("Results table (form > table) not found; layout changed or session expired")

    rows = table.find_all("tr")
    if len(rows) <= HEADER_ROWS + FOOTER_ROWS:
        return []

    return [parse_course_row(row) for row in rows[HEADER_ROWS:-FOOTER_ROWS]]


def parse_listing_page(html: str) -> List[Course]:
    """
    Parses one listing page and returns its courses in row order.
    """
    return parse_listing_soup(BeautifulSoup(html, "html.parser"))


def has_next_page(soup: BeautifulSoup) -> bool:
    return any(NEXT_PAGE_TEXT in a.get_text() for a in soup.find_all("a"))


# ---------------------------------------------------------------------------
# Detail page parsing
# ---------------------------------------------------------------------------


def _node_text(node: PageElement) -> str:
    if isinstance(node, NavigableString):
        return str(node)
    return node.get_text()


def collect_comments(root: Tag) -> List[Comment]:
    """
    All comment nodes under root, depth-first in document order.
    """
    return [node for node in root.descendants if isinstance(node, Comment)]


def area_description_from_comments(
    comments: Sequence[Comment],
    course_id: Optional[str] = None,
    marker: str = AREA_DESCRIPTION_MARKER,
    offset: int = AREA_DESCRIPTION_SIBLING_OFFSET,
) -> str:
    """
    Comment-anchored lookup of the patient area description.

    The detail page has no stable markup around the description; the only anchor is a
    comment containing `marker`, and the text sits `offset` sibling nodes after it.
    Raises FragileMarkupError when the marker is missing or the sibling chain is too short.
    """
    anchor = next((c for c in comments if marker in c), None)
    if anchor is None:
        raise FragileMarkupError(f"No comment containing {marker!r} on detail page", course_id=course_id)

    node: Optional[PageElement] = anchor
    for step in range(1, offset + 1):
        node = node.next_sibling
        if node is None:
            raise FragileMarkupError(
                f"Sibling chain after {marker!r} comment ends at step {step} of {offset}",
                course_id=course_id,
            )

    return _node_text(node).strip()


def parse_detail_soup(soup: BeautifulSoup, course_id: str) -> CourseDetails:
    paragraphs = [p for p in soup.find_all("p") if not p.has_attr("class")]
    if len(paragraphs) != 1:
        raise MalformedPageError(
            f"Expected exactly one <p> without class on detail page, found {len(paragraphs)}",
            course_id=course_id,
        )
    paragraph = paragraphs[0]

    area_link = paragraph.find("a", href="#")
    patient_area = area_link.get_text().strip() if area_link is not None else None

    description = area_description_from_comments(collect_comments(paragraph), course_id=course_id)

    return CourseDetails(
        course_id=course_id,
        patient_area=patient_area,
        patient_area_description=description,
    )


def parse_detail_page(html: str, course_id: str) -> CourseDetails:
    """
    Parses one course detail page into its (patient_area, patient_area_description) pair.
    """
    return parse_detail_soup(BeautifulSoup(html, "html.parser"), course_id)
