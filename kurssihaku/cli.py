"""
CLI (Command Line Interface).

    kurssihaku crawl [--start DD.MM.YYYY] [--end DD.MM.YYYY] [--area CODE ...] [--out courses.json]
    kurssihaku detail <course_id>
    kurssihaku run [--once] [--every MINUTES] [--api-url URL] [--out FILE]

Settings not given on the command line come from the environment / .env
(see kurssihaku/config.py).
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, List

from rich import box
from rich.console import Console
from rich.table import Table

from kurssihaku.config import Settings, load_settings
from kurssihaku.errors import KurssiError
from kurssihaku.logger import setup_logging
from kurssihaku.model import Course
from kurssihaku.run import Sink, run_forever, run_once
from kurssihaku.scrape import CatalogExtractor
from kurssihaku.session import SearchCriteria, SessionClient
from kurssihaku.sinks import CollectingSink, HttpSink, JsonFileSink


logger = logging.getLogger(__name__)
console = Console()


def _parse_date(text: str) -> date:
    try:
        return datetime.strptime(text.strip(), "%d.%m.%Y").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {text!r}, expected DD.MM.YYYY") from None


def _sink_factory(settings: Settings) -> Callable[[], Sink]:
    if settings.api_url:
        return lambda: HttpSink(settings.api_url, timeout=settings.request_timeout)
    if settings.output_file:
        return lambda: JsonFileSink(settings.output_file)
    return CollectingSink


def _print_courses(courses: List[Course]) -> None:
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Start")
    table.add_column("Area")
    table.add_column("Spots", justify="right")

    for c in courses:
        start = c.start_date.strftime("%d.%m.%Y") if c.start_date else f"[red]{c.start_date_text or '?'}[/red]"
        spots = str(c.spots_available) if c.spots_available is not None else f"[red]{c.spots_text or '?'}[/red]"
        table.add_row(c.id, c.name, start, c.area, spots)

    console.print(table)
    console.print(f"{len(courses)} courses")


def _cmd_crawl(args: argparse.Namespace, settings: Settings) -> int:
    start = args.start or date.today()
    end = args.end or start + timedelta(days=settings.crawl_days)
    if end < start:
        console.print("End date must not be before start date.")
        return 1

    criteria = SearchCriteria(
        start_date=start,
        end_date=end,
        language=args.language,
        search_term=args.search,
        course_type=args.course_type,
        course_language=args.course_language,
        illness=args.illness,
        profession=args.profession,
        area=args.area,
        job_status=args.job_status,
        target_group=args.target_group,
        spots_available=args.spots_available,
    )

    max_pages = args.max_pages or settings.max_pages
    try:
        with SessionClient(timeout=settings.request_timeout) as client:
            courses = CatalogExtractor(client, max_pages=max_pages).crawl(criteria)
    except KurssiError as exc:
        logger.error("Crawl failed: %s", exc)
        return 2

    if args.out:
        sink = JsonFileSink(args.out)
        for c in courses:
            sink.send(c)
        sink.close()
        console.print(f"Wrote {len(courses)} courses to: {args.out}")
    else:
        _print_courses(courses)
    return 0


def _cmd_detail(args: argparse.Namespace, settings: Settings) -> int:
    course_id = (args.course_id or "").strip()
    if not course_id:
        console.print("Please provide a course_id.")
        return 1

    try:
        with SessionClient(timeout=settings.request_timeout) as client:
            details = CatalogExtractor(client).fetch_detail(course_id)
    except KurssiError as exc:
        logger.error("Detail fetch failed: %s", exc)
        return 2

    console.print(f"Patient area: {details.patient_area or '-'}")
    console.print(f"Description : {details.patient_area_description}")
    return 0


def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    if args.api_url:
        settings = replace(settings, api_url=args.api_url)
    if args.out:
        settings = replace(settings, output_file=args.out)
    interval = args.every or settings.run_interval_minutes

    make_sink = _sink_factory(settings)

    if args.once or not interval:
        sink = make_sink()
        try:
            try:
                run_once(settings, sink)
            finally:
                sink.close()
        except KurssiError as exc:
            logger.error("Crawl failed: %s", exc)
            return 2
        return 0

    run_forever(settings, make_sink, interval)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="kurssihaku", description="Kela rehabilitation course crawler")
    parser.add_argument("--env-file", type=Path, default=None, help="Read settings from this .env file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_crawl = sub.add_parser("crawl", help="List courses")
    p_crawl.add_argument("--start", type=_parse_date, help="First start date (DD.MM.YYYY), default today")
    p_crawl.add_argument("--end", type=_parse_date, help="Last start date (DD.MM.YYYY)")
    p_crawl.add_argument("--search", default="", help="Free-text search term")
    p_crawl.add_argument("--course-type", default="SAIRA", help="Course type code")
    p_crawl.add_argument("--course-language", default="S", help="Course language code")
    p_crawl.add_argument("--illness", default="", help="Illness code")
    p_crawl.add_argument("--area", default="", help="Area code")
    p_crawl.add_argument("--language", default="null", help="Site language")
    p_crawl.add_argument("--profession", default="", help="Profession code")
    p_crawl.add_argument("--job-status", default="", help="Job status code")
    p_crawl.add_argument("--target-group", default="", help="Target group code")
    p_crawl.add_argument("--spots-available", default="", help="Spots availability filter")
    p_crawl.add_argument("--max-pages", type=int, default=None, help="Stop after this many pages")
    p_crawl.add_argument("--out", type=Path, default=None, help="Write courses to this JSON file")

    p_detail = sub.add_parser("detail", help="Show patient area of one course")
    p_detail.add_argument("course_id", type=str, help="Course ID")

    p_run = sub.add_parser("run", help="Crawl, enrich and deliver courses")
    p_run.add_argument("--once", action="store_true", help="Run a single iteration and exit")
    p_run.add_argument("--every", type=int, default=None, help="Repeat every N minutes")
    p_run.add_argument("--api-url", default=None, help="POST courses to this URL")
    p_run.add_argument("--out", type=Path, default=None, help="Write courses to this JSON file")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.env_file)
    setup_logging("DEBUG" if args.verbose else settings.log_level, settings.log_file)

    if args.command == "crawl":
        raise SystemExit(_cmd_crawl(args, settings))
    if args.command == "detail":
        raise SystemExit(_cmd_detail(args, settings))
    if args.command == "run":
        raise SystemExit(_cmd_run(args, settings))

    raise SystemExit(2)
