from __future__ import annotations

import logging
import re
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from .config import BackendMode, Settings
from .models import SourceKind

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"^(https?://|www\.)\S+$", re.IGNORECASE)
TOPIC_MAX_WORDS = 8


def normalize_url(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme:
        return f"https://{url}"
    return url


def detect_source_kind(raw: str) -> SourceKind:
    stripped = raw.strip()
    if _URL_RE.match(stripped):
        return SourceKind.url
    if len(stripped.split()) <= TOPIC_MAX_WORDS and "\n" not in stripped:
        return SourceKind.topic
    return SourceKind.text


def extract_content(html: str) -> dict[str, Any]:
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.text.strip() if soup.title and soup.title.text else ""
    for tag in soup(["script", "style", "noscript", "nav", "footer"]):
        tag.decompose()
    text = " ".join(soup.get_text(" ").split())
    return {"text": text, "title": title}


class SourceFetcher:
    def __init__(
        self,
        settings: Settings,
        mode: BackendMode,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.settings = settings
        self.mode = mode
        self.http_client = http_client

    @property
    def enabled(self) -> bool:
        return self.mode == BackendMode.live and self.settings.fetch_url_sources

    def fetch(self, url: str) -> Optional[dict[str, Any]]:
        if not self.enabled:
            return None
        target = normalize_url(url.strip())
        client = self.http_client or httpx.Client(
            timeout=self.settings.http_timeout,
            follow_redirects=True,
            headers={"User-Agent": self.settings.user_agent},
        )
        try:
            response = client.get(target)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Could not fetch source %s: %s", target, exc)
            return None
        finally:
            if self.http_client is None:
                client.close()
        content_type = response.headers.get("content-type", "")
        if "html" not in content_type and "text" not in content_type:
            logger.info("Skipping non-text source %s (%s)", target, content_type)
            return None
        extracted = extract_content(response.text)
        if not extracted["text"]:
            return None
        extracted["text"] = extracted["text"][: self.settings.source_max_chars]
        return extracted
