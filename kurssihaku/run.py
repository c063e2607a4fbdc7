"""
Crawl runner.

One iteration = list all courses for the next `crawl_days` days, fetch the detail
pair of every course, merge it and hand each enriched course to a sink.

A failing detail page or sink delivery only skips that one course.
A failing listing crawl aborts the iteration.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, List, Optional, Protocol

from kurssihaku.config import Settings
from kurssihaku.errors import KurssiError, SinkError
from kurssihaku.model import Course
from kurssihaku.scrape import CatalogExtractor, DetailResult, fetch_details
from kurssihaku.session import SearchCriteria, SessionClient


logger = logging.getLogger(__name__)


class Sink(Protocol):
    def send(self, course: Course) -> None: ...

    def close(self) -> None: ...


@dataclass
class RunSummary:
    listed: int = 0
    sent: int = 0
    failed: int = 0
    invalid: int = 0


def _client_factory(settings: Settings) -> Callable[[], SessionClient]:
    return lambda: SessionClient(timeout=settings.request_timeout)


def _sequential_details(extractor: CatalogExtractor, courses: List[Course]) -> List[DetailResult]:
    results: List[DetailResult] = []
    for course in courses:
        try:
            results.append(extractor.fetch_detail(course.id))
        except KurssiError as exc:
            results.append(exc)
    return results


def run_once(
    settings: Settings,
    sink: Sink,
    client_factory: Optional[Callable[[], SessionClient]] = None,
    today: Optional[date] = None,
) -> RunSummary:
    """
    Run one crawl iteration and deliver every enriched course to `sink`.

    The sink is not closed here.
    """
    factory = client_factory or _client_factory(settings)
    start = today or date.today()
    criteria = SearchCriteria(start_date=start, end_date=start + timedelta(days=settings.crawl_days))
    summary = RunSummary()

    with factory() as client:
        extractor = CatalogExtractor(client, max_pages=settings.max_pages)
        courses = extractor.crawl(criteria)
        summary.listed = len(courses)

        if settings.detail_workers > 1:
            details = fetch_details([c.id for c in courses], factory, max_workers=settings.detail_workers)
        else:
            details = _sequential_details(extractor, courses)

    for course, result in zip(courses, details):
        if isinstance(result, KurssiError):
            logger.error("Skipping course %s: %s", course.id, result)
            summary.failed += 1
            continue

        if not course.is_valid:
            logger.warning(
                "Course %s has unparseable fields %s (start=%r, spots=%r)",
                course.id,
                course.parse_errors,
                course.start_date_text,
                course.spots_text,
            )
            summary.invalid += 1

        try:
            sink.send(course.with_details(result))
        except SinkError as exc:
            logger.error("Delivery failed for course %s: %s", course.id, exc)
            summary.failed += 1
            continue
        summary.sent += 1

    logger.info(
        "Run finished: listed=%d sent=%d failed=%d invalid=%d",
        summary.listed,
        summary.sent,
        summary.failed,
        summary.invalid,
    )
    return summary


def run_forever(
    settings: Settings,
    sink_factory: Callable[[], Sink],
    interval_minutes: int,
    iterations: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Run an iteration every `interval_minutes`. Failed iterations are logged and
    the schedule continues. `iterations` bounds the loop (None = forever).
    """
    logger.info("Crawl scheduled every %d minutes", interval_minutes)
    done = 0
    first = True
    while iterations is None or done < iterations:
        if not first or settings.parse_on_boot:
            sink = sink_factory()
            try:
                run_once(settings, sink)
            except Exception:
                logger.exception("Crawl iteration failed")
            finally:
                try:
                    sink.close()
                except SinkError as exc:
                    logger.error("Closing sink failed: %s", exc)
            done += 1
        first = False
        if iterations is not None and done >= iterations:
            break
        sleep(interval_minutes * 60)
