from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Iterator, List, Optional, Sequence, Union

from kurssihaku.errors import KurssiError, PaginationLimitError
from kurssihaku.model import Course, CourseDetails
from kurssihaku.parse import has_next_page, make_soup, parse_detail_soup, parse_listing_soup
from kurssihaku.session import DEFAULT_TIMEOUT, SearchCriteria, SessionClient


logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 500

ClientFactory = Callable[[], SessionClient]
DetailResult = Union[CourseDetails, KurssiError]


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


class CatalogExtractor:
    """
    Walks the listing pagination of one session and parses detail pages.

    The extractor never owns the client; whoever created the client closes it.
    """

    def __init__(self, client: SessionClient, max_pages: int = DEFAULT_MAX_PAGES):
        self.client = client
        self.max_pages = max(1, max_pages)

    def iter_pages(self, criteria: SearchCriteria) -> Iterator[List[Course]]:
        """
        Yield one batch of courses per listing page, in page order.

        The search response is parsed first, then "next page" is requested once and
        again for as long as the latest page shows a "Seuraava sivu" link.
        """
        soup = make_soup(self.client.submit_search(criteria))
        batch = parse_listing_soup(soup)
        logger.info("Search page: %d courses", len(batch))
        yield batch

        previous_ids = [c.id for c in batch]
        pages = 0
        while True:
            if pages >= self.max_pages:
                raise PaginationLimitError(self.max_pages)
            pages += 1

            soup = make_soup(self.client.request_next_page())
            batch = parse_listing_soup(soup)
            ids = [c.id for c in batch]

            if ids and ids == previous_ids:
                logger.warning("Page %d repeats the previous page (%d courses); stopping", pages, len(ids))
                return

            logger.info("Page %d: %d courses", pages, len(batch))
            yield batch

            if not has_next_page(soup):
                return
            previous_ids = ids

    def crawl(self, criteria: SearchCriteria) -> List[Course]:
        courses: List[Course] = []
        for batch in self.iter_pages(criteria):
            courses.extend(batch)
        logger.info("Crawl finished: %d courses", len(courses))
        return courses

    def fetch_detail(self, course_id: str) -> CourseDetails:
        soup = make_soup(self.client.request_detail(course_id))
        return parse_detail_soup(soup, course_id)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def crawl(
    start_date: date,
    end_date: date,
    max_pages: int = DEFAULT_MAX_PAGES,
    timeout: float = DEFAULT_TIMEOUT,
    **filters: str,
) -> List[Course]:
    """
    Run one listing crawl on a fresh session and close it afterwards.

    `filters` are SearchCriteria fields (search_term, course_type, area, ...).
    """
    criteria = SearchCriteria(start_date=start_date, end_date=end_date, **filters)
    with SessionClient(timeout=timeout) as client:
        return CatalogExtractor(client, max_pages=max_pages).crawl(criteria)


def fetch_detail(course_id: str, timeout: float = DEFAULT_TIMEOUT) -> CourseDetails:
    with SessionClient(timeout=timeout) as client:
        return CatalogExtractor(client).fetch_detail(course_id)


def fetch_details(
    course_ids: Sequence[str],
    client_factory: ClientFactory,
    max_workers: int = 4,
) -> List[DetailResult]:
    """
    Fetch many detail pages on a bounded thread pool.

    Every worker thread gets its own SessionClient from client_factory. The result list
    is in input order and holds either the CourseDetails or the KurssiError raised for
    that course, so one broken page does not abort the batch.
    """
    local = threading.local()
    clients: List[SessionClient] = []
    clients_lock = threading.Lock()

    def _client() -> SessionClient:
        client: Optional[SessionClient] = getattr(local, "client", None)
        if client is None:
            client = client_factory()
            local.client = client
            with clients_lock:
                clients.append(client)
        return client

    def _one(course_id: str) -> DetailResult:
        try:
            return CatalogExtractor(_client()).fetch_detail(course_id)
        except KurssiError as exc:
            return exc

    try:
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            return list(pool.map(_one, course_ids))
    finally:
        for client in clients:
            client.close()
