"""Rendered page handed from a backend to the extractors."""
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from selectolax.parser import HTMLParser

from pricewatch.parse.models import Backend


@dataclass
class RenderedPage:
    """Final URL, DOM markup and any JSON responses captured while loading."""

    url: str
    html: str
    backend: Backend
    json_payloads: list[Any] = field(default_factory=list)

    @cached_property
    def parser(self) -> HTMLParser:
        return HTMLParser(self.html)
