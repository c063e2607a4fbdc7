"""Exceptions raised while crawling the course catalog."""

from __future__ import annotations

from typing import Optional


class KurssiError(Exception):
    """Base exception for all crawl failures."""


class TransportError(KurssiError):
    """Connection problem, timeout or non-success HTTP status."""

    def __init__(
        self,
        message: str,
        kind: str,
        url: str,
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.url = url
        self.status_code = status_code
        super().__init__(f"{kind} request failed: {message}")


class MalformedPageError(KurssiError):
    """An expected structural anchor is missing or ambiguous."""

    def __init__(self, message: str, course_id: Optional[str] = None):
        self.course_id = course_id
        if course_id:
            message = f"{message} (course {course_id})"
        super().__init__(message)


class FragileMarkupError(KurssiError):
    """The comment-and-offset heuristic on a detail page found nothing to anchor on."""

    def __init__(self, message: str, course_id: Optional[str] = None):
        self.course_id = course_id
        if course_id:
            message = f"{message} (course {course_id})"
        super().__init__(message)


class PaginationLimitError(KurssiError):
    """The server kept reporting a next page beyond the configured cap."""

    def __init__(self, max_pages: int):
        self.max_pages = max_pages
        super().__init__(f"Pagination did not terminate within {max_pages} pages")


class SinkError(KurssiError):
    """A course could not be delivered downstream."""

    def __init__(self, message: str, course_id: Optional[str] = None):
        self.course_id = course_id
        super().__init__(message)


class FieldParseError(ValueError):
    """A single listing cell could not be parsed into its typed value."""

    def __init__(self, field_name: str, text: str):
        self.field_name = field_name
        self.text = text
        super().__init__(f"Cannot parse {field_name} from {text!r}")
