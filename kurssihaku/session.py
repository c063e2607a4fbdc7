from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

import requests

from kurssihaku.errors import TransportError


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# URLs & form constants
# ---------------------------------------------------------------------------

BASE_URL = "https://kuntoutus.kela.fi/kurssihaku/KZInternetApplication/YleiskyselyHakuUseCase"

DATE_FORMAT = "%d.%m.%Y"
DEFAULT_TIMEOUT = 30.0

# The search form is rejected unless these two fields are sent verbatim.
SEARCH_SUBMIT_FIELD = ("yleiskysely_hae", "Suorita haku  ")
CSRF_PLACEHOLDER_FIELD = ("<csrf:tokenname/>", "<csrf:tokenvalue/>")


class RequestKind:
    SEARCH = "search"
    NEXT_PAGE = "next_page"
    DETAIL = "detail"


FormData = List[Tuple[str, str]]


@dataclass(frozen=True)
class SearchCriteria:
    """
    All fields of the catalog search form. Defaults match the site's own defaults.
    """

    start_date: date
    end_date: date
    language: str = "null"
    search_term: str = ""
    course_type: str = "SAIRA"
    course_language: str = "S"
    illness: str = ""
    profession: str = ""
    area: str = ""
    job_status: str = ""
    target_group: str = ""
    spots_available: str = ""

    def to_form(self) -> FormData:
        return [
            SEARCH_SUBMIT_FIELD,
            CSRF_PLACEHOLDER_FIELD,
            ("lang", self.language),
            ("yleiskysely_alpv", self.start_date.strftime(DATE_FORMAT)),
            ("yleiskysely_lopv", self.end_date.strftime(DATE_FORMAT)),
            ("yleiskysely_hakusana", self.search_term),
            ("yleiskysely_tyyppi", self.course_type),
            ("yleiskysely_kukieli", self.course_language),
            ("yleiskysely_sairaus", self.illness),
            ("yleiskysely_ammatti", self.profession),
            ("yleiskysely_alue", self.area),
            ("yleiskysely_tyoti", self.job_status),
            ("yleiskysely_aikulanu", self.target_group),
            ("yleiskysely_paikkatil", self.spots_available),
        ]


NEXT_PAGE_FORM: FormData = [("luettelo_sivu", "seuraava"), ("lang", "fi")]


# ---------------------------------------------------------------------------
# Session client
# ---------------------------------------------------------------------------


class SessionClient:
    """
    One cookie-backed HTTP session against the catalog endpoint.

    The server keeps the pagination cursor in the session, so a client must not be
    shared between concurrent crawls. Responses are returned as raw bytes; decoding
    is done by the parser.
    """

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def __enter__(self) -> "SessionClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def submit_search(self, criteria: SearchCriteria) -> bytes:
        return self._send(RequestKind.SEARCH, "POST", data=criteria.to_form())

    def request_next_page(self) -> bytes:
        return self._send(RequestKind.NEXT_PAGE, "POST", data=NEXT_PAGE_FORM)

    def request_detail(self, course_id: str) -> bytes:
        return self._send(RequestKind.DETAIL, "GET", params=[("valittu", course_id), ("lang", "fi")])

    def _send(
        self,
        kind: str,
        method: str,
        data: Optional[FormData] = None,
        params: Optional[FormData] = None,
    ) -> bytes:
        logger.debug("%s %s (%s)", method, self.base_url, kind)
        try:
            resp = self.session.request(
                method,
                self.base_url,
                data=data,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc), kind=kind, url=self.base_url) from exc

        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise TransportError(
                f"HTTP {resp.status_code}",
                kind=kind,
                url=resp.url or self.base_url,
                status_code=resp.status_code,
            ) from exc

        return resp.content
