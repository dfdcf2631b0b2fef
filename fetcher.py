"""
fetcher.py — Fetch a legal document from a URL and strip it to plain text.
"""

import logging
import os
import re
from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup

from errors import FetchFailure, InvalidInput, Timeout
from normalizer import DocumentType, sniff_document_type

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = float(os.environ.get("FETCH_TIMEOUT", "15"))   # seconds

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
}

BOILERPLATE = "script, style, noscript, nav, header, footer, aside, .navigation, .menu, .sidebar"

MAIN_SELECTORS = (
    "main",
    '[role="main"]',
    ".main-content",
    ".content",
    ".terms-content",
    ".privacy-content",
    ".legal-content",
    "article",
    ".document",
    ".policy",
)
MIN_MAIN_CHARS = 500


@dataclass(frozen=True)
class FetchedDocument:
    url:           str
    title:         str
    content:       str
    document_type: DocumentType


def is_url(message: str) -> bool:
    return message.startswith("http://") or message.startswith("https://")


def extract_main_text(html: str) -> tuple:
    """Return (title, text) with navigation and boilerplate removed."""
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    h1 = soup.find("h1")
    title = (title_tag.get_text(strip=True) if title_tag else "") \
        or (h1.get_text(strip=True) if h1 else "") \
        or "Legal Document"

    for element in soup.select(BOILERPLATE):
        element.decompose()

    content = ""
    for selector in MAIN_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            content = element.get_text(separator=" ", strip=True)
            if len(content) > MIN_MAIN_CHARS:
                break

    if len(content) < MIN_MAIN_CHARS and soup.body is not None:
        content = soup.body.get_text(separator=" ", strip=True)

    return title, re.sub(r"\s+", " ", content).strip()


def fetch_document(url: str, document_type=DocumentType.TERMS,
                   timeout: float = FETCH_TIMEOUT) -> FetchedDocument:
    if not is_url(url):
        raise InvalidInput("Invalid URL format. Please provide a valid HTTP or HTTPS URL.")

    logger.info("Content fetch requested for %s", url)
    try:
        resp = requests.get(url, headers=HEADERS, timeout=min(timeout, FETCH_TIMEOUT))
        resp.raise_for_status()
    except requests.exceptions.Timeout as e:
        logger.warning("Fetching %s timed out", url)
        raise Timeout("Fetching the document timed out. Please try again or paste the text instead.") from e
    except requests.exceptions.RequestException as e:
        logger.warning("Fetching %s failed: %s", url, e)
        raise FetchFailure(url) from e

    title, content = extract_main_text(resp.text)
    return FetchedDocument(
        url=url,
        title=title,
        content=content,
        document_type=sniff_document_type(content, document_type),
    )
