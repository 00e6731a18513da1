"""
Model-number service.

A model-number service maps a product title to a model/part number or the
"N/A" sentinel. It never raises to the caller: failures are logged and
reported as "N/A" so extraction falls back to local pattern matching.
"""
import asyncio
import logging
import re
from typing import Optional, Protocol

import httpx

from pricewatch.config import config
from pricewatch.parse.models import MODEL_NOT_FOUND
from pricewatch.parse.normalize import KNOWN_BRANDS, extract_model, is_usable_model

logger = logging.getLogger(__name__)

# Cheap shapes tried before spending an API call
_PREPASS_PATTERNS = [
    # "Product Name - KP1460"
    re.compile(r"\s-\s([A-Z][A-Z0-9-]*\d[A-Z0-9-]*)", re.IGNORECASE),
    # "(94065325i)"
    re.compile(r"\(((?=[A-Z0-9-]*\d)[A-Z0-9][A-Z0-9-]{2,})\)", re.IGNORECASE),
    # "Brand AE12000E description"
    re.compile(r"^[A-Za-z\s]+\s([A-Z][A-Z0-9]*\d[A-Z0-9-]*)\s"),
    re.compile(r"\b([A-Z]{2,}[0-9]{3,}[A-Z0-9]*)\b", re.IGNORECASE),
    # "MA-61224", "SPi-Pro25"
    re.compile(r"\b([A-Z]{2,}[A-Z0-9]*-[A-Z0-9]*\d[A-Z0-9]*)\b", re.IGNORECASE),
]
SKIP_WORDS = {"heavy", "duty", "standard", "premium", "digital", "smart", "multi", "battery", "charger"}
REJECTED_NAMES = {brand.lower() for brand in KNOWN_BRANDS} | {"sydney tools"}

SYSTEM_PROMPT = """You are an expert at extracting model numbers from product names. Extract ONLY the model number/part number from the product name, excluding brand names.

Rules:
- Return only the model number (e.g. "SP61086", "MA61224", "GENIUS2X4", "SPi-Pro25", "KP1460")
- Look for patterns after dashes like "- KP1460"
- Look for alphanumeric codes in parentheses like "(940261345)"
- Do NOT include brand names (Schumacher, Matson, NOCO, SP Tools, Kincrome, etc.)
- Do NOT include descriptive text, voltages, or specifications
- If no clear model number exists, return "N/A"
- Keep alphanumeric characters, hyphens and underscores only"""


class ModelNumberService(Protocol):
    async def extract_model(self, title: str) -> str:
        ...


def prepass_model(title: str) -> Optional[str]:
    """Model number by pattern alone, or None when the title needs the API."""
    for pattern in _PREPASS_PATTERNS:
        match = pattern.search(title)
        if match:
            model = match.group(1).strip()
            if model.lower() not in SKIP_WORDS:
                return model
    return None


def clean_response(text: Optional[str]) -> str:
    """Normalise a raw completion into a model number or "N/A"."""
    value = (text or "").strip().strip("\"'`").strip()
    value = re.sub(r"[()\[\]]", "", value)
    if not value:
        return MODEL_NOT_FOUND
    lowered = value.lower()
    if any(name in lowered for name in REJECTED_NAMES):
        return MODEL_NOT_FOUND
    return value


class OpenAIModelNumberService:
    """Chat-completions backed model-number extraction."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model or config.OPENAI_MODEL
        self.client = client or httpx.AsyncClient(
            base_url=base_url or config.OPENAI_BASE_URL,
            timeout=config.MODEL_SERVICE_TIMEOUT,
        )
        self._headers = {"Authorization": f"Bearer {api_key}"}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.aclose()

    async def extract_model(self, title: str) -> str:
        if not title or not title.strip():
            return MODEL_NOT_FOUND

        model = prepass_model(title)
        if model:
            return model

        payload = {
            "model": self.model,
            "temperature": 0.1,
            "max_tokens": 50,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f'Extract the model number from: "{title}"'},
            ],
        }
        try:
            response = await self.client.post("/chat/completions", json=payload, headers=self._headers)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Model-number service failed for '{title}': {e}")
            return MODEL_NOT_FOUND
        return clean_response(content)


def build_model_service() -> Optional[OpenAIModelNumberService]:
    """Configured service, or None when no API key is set."""
    if not config.OPENAI_API_KEY:
        return None
    return OpenAIModelNumberService(config.OPENAI_API_KEY)


class ModelResolver:
    """Batches service lookups and falls back to local pattern extraction."""

    def __init__(
        self,
        service: Optional[ModelNumberService] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ):
        self.service = service
        self.batch_size = batch_size or config.MODEL_BATCH_SIZE
        self.batch_delay = config.MODEL_BATCH_DELAY if batch_delay is None else batch_delay

    async def _lookup(self, title: str) -> str:
        try:
            return await self.service.extract_model(title)
        except Exception as e:
            logger.warning(f"Model-number lookup raised for '{title}': {e}")
            return MODEL_NOT_FOUND

    async def lookup_many(self, titles: list[str]) -> list[str]:
        """Service answers for each title, in order; "N/A" when unavailable."""
        if self.service is None:
            return [MODEL_NOT_FOUND] * len(titles)
        results: list[str] = []
        for start in range(0, len(titles), self.batch_size):
            batch = titles[start:start + self.batch_size]
            results.extend(await asyncio.gather(*(self._lookup(title) for title in batch)))
            if start + self.batch_size < len(titles):
                await asyncio.sleep(self.batch_delay)
        return results

    async def resolve_many(self, titles: list[str], brands: list[str]) -> list[str]:
        """Authoritative service answer where usable, else the local guess."""
        answers = await self.lookup_many(titles)
        models = []
        for title, brand, answer in zip(titles, brands, answers):
            if answer and is_usable_model(answer):
                models.append(answer.strip())
            else:
                models.append(extract_model(title, brand))
        return models
