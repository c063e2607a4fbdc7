"""
Tests for the session client against a mounted in-memory transport.

The transport is a real requests adapter, so cookie handling, form encoding
and status checks all go through requests itself.
"""

import unittest
from datetime import date
from http.client import HTTPMessage
from types import SimpleNamespace
from typing import Any, Dict, List, Tuple

import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from kurssihaku.errors import TransportError
from kurssihaku.session import BASE_URL, RequestKind, SearchCriteria, SessionClient

Reply = Tuple[int, bytes, List[Tuple[str, str]]]


class RecordingAdapter(BaseAdapter):
    def __init__(self, replies: List[Reply]) -> None:
        super().__init__()
        self.replies = list(replies)
        self.requests: List[requests.PreparedRequest] = []
        self.send_kwargs: List[Dict[str, Any]] = []

    def send(self, request, **kwargs):  # noqa: ANN001
        self.requests.append(request)
        self.send_kwargs.append(kwargs)
        status, body, headers = self.replies.pop(0)

        msg = HTTPMessage()
        for key, value in headers:
            msg[key] = value

        resp = requests.Response()
        resp.status_code = status
        resp._content = body
        resp.headers = CaseInsensitiveDict(headers)
        resp.url = request.url
        resp.request = request
        resp.raw = SimpleNamespace(_original_response=SimpleNamespace(msg=msg))
        return resp

    def close(self) -> None:
        pass


class FailingAdapter(BaseAdapter):
    def send(self, request, **kwargs):  # noqa: ANN001
        raise requests.ConnectionError("connection refused")

    def close(self) -> None:
        pass


def _client(adapter: BaseAdapter, timeout: float = 5.0) -> SessionClient:
    session = requests.Session()
    session.mount("https://", adapter)
    return SessionClient(timeout=timeout, session=session)


CRITERIA = SearchCriteria(start_date=date(2024, 3, 15), end_date=date(2025, 3, 15))


class TestSessionClient(unittest.TestCase):
    def test_cookie_from_search_is_sent_with_next_page(self) -> None:
        adapter = RecordingAdapter(
            [
                (200, b"<html></html>", [("Set-Cookie", "JSESSIONID=abc123; Path=/")]),
                (200, b"<html></html>", []),
            ]
        )
        with _client(adapter) as client:
            client.submit_search(CRITERIA)
            client.request_next_page()

        self.assertNotIn("Cookie", adapter.requests[0].headers)
        self.assertIn("JSESSIONID=abc123", adapter.requests[1].headers.get("Cookie", ""))

    def test_search_form_fields(self) -> None:
        adapter = RecordingAdapter([(200, b"", [])])
        with _client(adapter) as client:
            client.submit_search(CRITERIA)

        req = adapter.requests[0]
        self.assertEqual(req.method, "POST")
        self.assertEqual(req.url, BASE_URL)
        self.assertEqual(req.headers["Content-Type"], "application/x-www-form-urlencoded")
        body = req.body
        self.assertTrue(body.startswith("yleiskysely_hae=Suorita+haku++&"))
        self.assertIn("%3Ccsrf%3Atokenname%2F%3E=%3Ccsrf%3Atokenvalue%2F%3E", body)
        self.assertIn("lang=null", body)
        self.assertIn("yleiskysely_alpv=15.03.2024", body)
        self.assertIn("yleiskysely_lopv=15.03.2025", body)
        self.assertIn("yleiskysely_tyyppi=SAIRA", body)
        self.assertIn("yleiskysely_kukieli=S", body)
        self.assertIn("yleiskysely_paikkatil=", body)

    def test_next_page_and_detail_requests(self) -> None:
        adapter = RecordingAdapter([(200, b"", []), (200, b"", [])])
        with _client(adapter) as client:
            client.request_next_page()
            client.request_detail("12345")

        self.assertEqual(adapter.requests[0].body, "luettelo_sivu=seuraava&lang=fi")
        self.assertEqual(adapter.requests[1].method, "GET")
        self.assertEqual(adapter.requests[1].url, BASE_URL + "?valittu=12345&lang=fi")

    def test_returns_raw_bytes(self) -> None:
        body = "Etelä-Suomi".encode("iso-8859-1")
        adapter = RecordingAdapter([(200, body, [])])
        with _client(adapter) as client:
            self.assertEqual(client.request_detail("1"), body)

    def test_every_request_has_a_timeout(self) -> None:
        adapter = RecordingAdapter([(200, b"", []), (200, b"", []), (200, b"", [])])
        with _client(adapter, timeout=7.5) as client:
            client.submit_search(CRITERIA)
            client.request_next_page()
            client.request_detail("1")

        self.assertEqual([kw["timeout"] for kw in adapter.send_kwargs], [7.5, 7.5, 7.5])

    def test_http_error_status(self) -> None:
        adapter = RecordingAdapter([(503, b"busy", [])])
        with _client(adapter) as client:
            with self.assertRaises(TransportError) as ctx:
                client.request_next_page()

        self.assertEqual(ctx.exception.kind, RequestKind.NEXT_PAGE)
        self.assertEqual(ctx.exception.status_code, 503)

    def test_connection_error(self) -> None:
        with _client(FailingAdapter()) as client:
            with self.assertRaises(TransportError) as ctx:
                client.request_detail("42")

        self.assertEqual(ctx.exception.kind, RequestKind.DETAIL)
        self.assertIsNone(ctx.exception.status_code)


if __name__ == "__main__":
    unittest.main()
