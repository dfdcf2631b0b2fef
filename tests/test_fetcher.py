from unittest import mock

import pytest
import requests

from errors import FetchFailure, InvalidInput, Timeout
from fetcher import extract_main_text, fetch_document, is_url
from normalizer import DocumentType

BODY = "We respect your privacy and explain every choice you have about your data. " * 10

HTML = f"""
<html>
  <head><title>Example Privacy Policy</title><script>var tracking = 1;</script></head>
  <body>
    <nav>Home | Pricing | Login</nav>
    <main><h1>Privacy Policy</h1><p>{BODY}</p></main>
    <footer>Copyright Example Inc</footer>
  </body>
</html>
"""


def _response(text="", status=200):
    resp = mock.Mock(status_code=status, text=text)
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
    return resp


def test_is_url():
    assert is_url("https://example.com")
    assert is_url("http://example.com")
    assert not is_url("example.com")


def test_extract_main_text_drops_boilerplate():
    title, text = extract_main_text(HTML)
    assert title == "Example Privacy Policy"
    assert "We respect your privacy" in text
    assert "Pricing" not in text
    assert "Copyright" not in text
    assert "tracking" not in text


def test_short_main_falls_back_to_body():
    title, text = extract_main_text(
        "<html><body><h1>Terms</h1><main>Tiny</main><div>Outside the main element</div></body></html>")
    assert title == "Terms"
    assert "Outside the main element" in text


@mock.patch("fetcher.requests.get")
def test_fetch_document_sniffs_type(get):
    get.return_value = _response(HTML)
    doc = fetch_document("https://example.com/privacy", timeout=5)

    assert doc.url == "https://example.com/privacy"
    assert doc.title == "Example Privacy Policy"
    assert doc.document_type is DocumentType.PRIVACY
    assert get.call_args.kwargs["timeout"] == 5


def test_fetch_rejects_non_http_url():
    with pytest.raises(InvalidInput):
        fetch_document("ftp://example.com/terms")


@mock.patch("fetcher.requests.get", side_effect=requests.exceptions.ConnectTimeout("slow"))
def test_fetch_timeout(get):
    with pytest.raises(Timeout):
        fetch_document("https://example.com/terms")


@mock.patch("fetcher.requests.get", side_effect=requests.exceptions.ConnectionError("refused"))
def test_fetch_connection_error(get):
    with pytest.raises(FetchFailure) as exc:
        fetch_document("https://example.com/terms")
    assert exc.value.url == "https://example.com/terms"
    assert exc.value.status_code == 400


@mock.patch("fetcher.requests.get")
def test_fetch_http_error(get):
    get.return_value = _response(status=404)
    with pytest.raises(FetchFailure):
        fetch_document("https://example.com/missing")
