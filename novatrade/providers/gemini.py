from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from novatrade.providers.base import OracleQuote, PriceOracle
from novatrade.trading.errors import ExternalSyncFailure

log = logging.getLogger("gemini_oracle")

PROMPT = (
    "Find the current real-time trading price in Indian Rupee (INR) for these NSE/BSE stocks: {symbols}. "
    "Do not return simulated or old data. Use Google Search to find the latest price. "
    "Return the output strictly as a valid JSON array of objects with 'symbol' (string) and 'price' (number) keys. "
    'Example: [{{"symbol": "TCS", "price": 3500.00}}, {{"symbol": "RELIANCE", "price": 2400.50}}]'
)

_FENCE = re.compile(r"```(?:json)?")
_ARRAY = re.compile(r"\[[\s\S]*\]")


class GeminiOracle(PriceOracle):
    """
    Gemini price oracle (REST generateContent + Google Search grounding).

    The model answers in free text, so the first JSON array in the reply is
    parsed; grounding chunks become provenance sources.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_s: float = 20.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not api_key:
            raise RuntimeError("Missing Gemini API key. Set GEMINI_API_KEY in your .env.")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_prices(self, symbols: List[str]) -> OracleQuote:
        if not symbols:
            return OracleQuote()

        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": PROMPT.format(symbols=", ".join(symbols))}]}],
            # responseMimeType is not allowed together with the search tool
            "tools": [{"google_search": {}}],
        }

        try:
            resp = await self._client.post(url, params={"key": self.api_key}, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalSyncFailure(f"Gemini request failed for {len(symbols)} symbols: {e!r}") from e

        wanted = {s.upper() for s in symbols}
        prices = {
            sym: price for sym, price in parse_prices(response_text(data)).items() if sym in wanted
        }
        return OracleQuote(prices=prices, sources=grounding_sources(data))


def response_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


def parse_prices(text: str) -> Dict[str, float]:
    """
    Pull {"symbol", "price"} objects out of a model reply.
    Markdown fences are stripped; malformed rows are skipped.
    """
    if not text:
        return {}

    clean = _FENCE.sub("", text).replace("```", "")
    match = _ARRAY.search(clean)
    if not match:
        log.warning("No JSON array found in oracle reply: %.200s", text)
        return {}

    try:
        rows = json.loads(match.group(0))
    except ValueError as e:
        raise ExternalSyncFailure(f"Malformed price JSON from oracle: {e}") from e

    if not isinstance(rows, list):
        return {}

    out: Dict[str, float] = {}
    for row in rows:
        if not isinstance(row, dict):
            continue
        sym = row.get("symbol")
        price = row.get("price")
        if sym is None or price is None:
            continue
        try:
            value = float(price)
        except (TypeError, ValueError):
            continue
        if value > 0:
            out[str(sym).strip().upper()] = value
    return out


def grounding_sources(data: Dict[str, Any]) -> List[Dict[str, str]]:
    candidates = data.get("candidates") or []
    if not candidates:
        return []
    chunks = (candidates[0].get("groundingMetadata") or {}).get("groundingChunks") or []

    sources: List[Dict[str, str]] = []
    for chunk in chunks:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if web:
            sources.append({"title": web.get("title", ""), "uri": web.get("uri", "")})
    return sources
