"""Shared fakes: no test touches the network or launches a browser."""
import asyncio
from typing import Any, Optional

import pytest

from pricewatch.fetch.page import RenderedPage
from pricewatch.parse.models import MODEL_NOT_FOUND


class FakeFetcher:
    """Serves canned HTML per URL (or one page for every URL)."""

    def __init__(
        self,
        pages: Optional[dict[str, str]] = None,
        html: str = "",
        error: Optional[Exception] = None,
        json_payloads: Optional[list[Any]] = None,
        backend: str = "static",
        delay: float = 0,
    ):
        self.pages = pages or {}
        self.html = html
        self.error = error
        self.json_payloads = json_payloads or []
        self.backend = backend
        self.delay = delay
        self.calls: list[str] = []

    async def render(self, url: str, load_more_selectors: tuple[str, ...] = ()) -> RenderedPage:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return RenderedPage(
            url=url,
            html=self.pages.get(url, self.html),
            backend=self.backend,
            json_payloads=list(self.json_payloads),
        )


class FakeModelService:
    """Answers from a dict, "N/A" otherwise; raises for titles in ``fail``."""

    def __init__(self, answers: Optional[dict[str, str]] = None, fail: tuple[str, ...] = ()):
        self.answers = answers or {}
        self.fail = fail
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def extract_model(self, title: str) -> str:
        self.calls.append(title)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if title in self.fail:
                raise RuntimeError(f"service down for {title}")
            return self.answers.get(title, MODEL_NOT_FOUND)
        finally:
            self.in_flight -= 1


def product_card(title: str, price_html: str, index: int = 0, css_class: str = "product", extra: str = "") -> str:
    return (
        f'<div class="{css_class}">'
        f'<a href="/p/{index}"><img src="/img/{index}.jpg" alt="{title}"></a>'
        f"<h3>{title}</h3>"
        f"{price_html}{extra}"
        f"</div>"
    )


def listing_page(cards: list[str]) -> str:
    return "<html><body><main>" + "".join(cards) + "</main></body></html>"


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def fake_model_service():
    return FakeModelService


@pytest.fixture
def card():
    return product_card


@pytest.fixture
def page():
    return listing_page
