"""
Downstream sinks for enriched courses.

A sink accepts one Course at a time via send() and is closed once per run:

    HttpSink      POSTs each course as JSON to an API endpoint
    JsonFileSink  writes all courses of a run into one JSON file
    CollectingSink keeps courses in memory
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

import requests

from kurssihaku.errors import SinkError
from kurssihaku.model import Course


logger = logging.getLogger(__name__)


class CollectingSink:
    def __init__(self) -> None:
        self.courses: List[Course] = []

    def send(self, course: Course) -> None:
        self.courses.append(course)

    def close(self) -> None:
        pass


class HttpSink:
    def __init__(self, url: str, timeout: float = 30.0, session: requests.Session | None = None):
        self.url = url
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def send(self, course: Course) -> None:
        try:
            resp = self.session.post(self.url, json=course.to_dict(), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise SinkError(f"Posting course {course.id} to {self.url} failed: {exc}", course_id=course.id) from exc
        logger.debug("Sent course %s", course.id)

    def close(self) -> None:
        self.session.close()


class JsonFileSink:
    """
    Collects courses and writes them as one JSON array on close().

    Creates parent directories if needed.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._payload: List[dict] = []

    def send(self, course: Course) -> None:
        self._payload.append(course.to_dict())

    def close(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as exc:
            raise SinkError(f"Writing {self.path} failed: {exc}") from exc
        logger.info("Wrote %d courses to %s", len(self._payload), self.path)
