"""Tests for the model-number service and resolver."""
import httpx
import pytest

from pricewatch.enrich.model_number import (
    ModelResolver,
    OpenAIModelNumberService,
    clean_response,
    prepass_model,
)


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Kincrome Socket Set 1/2in Drive 24 Piece - KP1460", "KP1460"),
        ("NOCO GENIUS2X4 6V/12V 4-Bank Battery Charger", "GENIUS2X4"),
        ("Projecta Battery Charger (IC1500)", "IC1500"),
        ("Matson MA-61224 Smart Charger", "MA-61224"),
        ("Heavy Duty Battery Charger", None),
    ],
)
def test_prepass_model(title, expected):
    """Test pattern-only model extraction."""
    assert prepass_model(title) == expected


def test_clean_response():
    """Test completion cleanup and brand rejection."""
    assert clean_response(' "SP61086" ') == "SP61086"
    assert clean_response("(GB40)") == "GB40"
    assert clean_response("") == "N/A"
    assert clean_response(None) == "N/A"
    assert clean_response("NOCO") == "N/A"


def _service(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://llm.test/v1")
    return OpenAIModelNumberService("test-key", model="test-model", client=client)


def _completion(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


@pytest.mark.asyncio
async def test_service_success():
    """Test a successful completion request."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _completion("ZX-9")

    async with _service(handler) as service:
        assert await service.extract_model("Generic jump pack for cars") == "ZX-9"

    assert seen[0].url.path == "/v1/chat/completions"
    assert seen[0].headers["Authorization"] == "Bearer test-key"


@pytest.mark.asyncio
async def test_service_prepass_skips_request():
    """Test that obvious model numbers never reach the API."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _completion("WRONG")

    async with _service(handler) as service:
        assert await service.extract_model("Kincrome Socket Set - KP1460") == "KP1460"
    assert seen == []


@pytest.mark.asyncio
async def test_service_http_error_is_not_found():
    """Test that a server error maps to "N/A" instead of raising."""
    async with _service(lambda request: httpx.Response(500)) as service:
        assert await service.extract_model("Generic jump pack for cars") == "N/A"


@pytest.mark.asyncio
async def test_service_malformed_body_is_not_found():
    """Test that an unexpected response shape maps to "N/A"."""
    async with _service(lambda request: httpx.Response(200, json={"choices": []})) as service:
        assert await service.extract_model("Generic jump pack for cars") == "N/A"


@pytest.mark.asyncio
async def test_service_brand_answer_is_rejected():
    """Test that a bare brand name is not accepted as a model number."""
    async with _service(lambda request: _completion("Schumacher")) as service:
        assert await service.extract_model("Generic jump pack for cars") == "N/A"


@pytest.mark.asyncio
async def test_resolver_without_service_uses_local_patterns():
    """Test the local fallback when no service is configured."""
    resolver = ModelResolver(None)
    assert await resolver.resolve_many(["Acme Widget X200"], ["Acme"]) == ["X200"]


@pytest.mark.asyncio
async def test_resolver_batches_and_keeps_order(fake_model_service):
    """Test bounded concurrency and input ordering."""
    titles = [f"Thing {i}" for i in range(12)]
    service = fake_model_service(answers={title: f"M{i:02d}" for i, title in enumerate(titles)})
    resolver = ModelResolver(service, batch_size=5, batch_delay=0)

    answers = await resolver.lookup_many(titles)

    assert answers == [f"M{i:02d}" for i in range(12)]
    assert service.max_in_flight <= 5
    assert service.calls == titles


@pytest.mark.asyncio
async def test_resolver_exception_falls_back(fake_model_service):
    """Test that a raising service is treated as "N/A"."""
    service = fake_model_service(answers={"Acme Widget X200": "AW200"}, fail=("Acme Widget X300",))
    resolver = ModelResolver(service, batch_delay=0)

    models = await resolver.resolve_many(["Acme Widget X200", "Acme Widget X300"], ["Acme", "Acme"])

    assert models == ["AW200", "X300"]
