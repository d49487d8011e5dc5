"""Inventory advice and pharmacist chat backed by the Gemini REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..core.config import settings
from ..schemas.assistant import ChatMessage
from ..schemas.inventory import InventoryItem

logger = logging.getLogger(__name__)

ANALYSIS_INSTRUCTIONS = """You are an expert pharmacy inventory manager. Analyze the following inventory list.

Inventory List:
{inventory}

Please provide a concise report in Markdown format covering:
1. **Critical Stock Alerts**: Items below minimum stock level.
2. **Expiration Risks**: Items expired or expiring within the next 3 months.
3. **Restock Recommendations**: What should be ordered immediately.
4. **General Health**: A one-sentence summary of the inventory status.

Keep it professional and actionable."""

PHARMACIST_INSTRUCTION = (
    "You are a helpful, knowledgeable AI Pharmacist Assistant. You help with drug interactions, "
    "side effects, and inventory management advice. Always include a disclaimer that you are an AI "
    "and not a substitute for professional medical advice when discussing treatments."
)


class AdvisorNotConfigured(Exception):
    """Raised when no text-generation API key is configured."""


class AdvisorUnavailable(Exception):
    """Raised when the text-generation service fails or returns nothing usable."""


def _ensure_configured() -> None:
    if not settings.GEMINI_API_KEY:
        raise AdvisorNotConfigured("AI assistant is not configured")


def summarize_item(item: InventoryItem) -> str:
    return (
        f"{item.name} (Generic: {item.generic_name}): Qty {item.quantity} {item.unit}, "
        f"Min {item.min_stock_level}, Exp {item.expiry_date.isoformat()}"
    )


def build_inventory_prompt(items: Sequence[InventoryItem]) -> str:
    inventory = "\n".join(summarize_item(item) for item in items)
    return ANALYSIS_INSTRUCTIONS.format(inventory=inventory)


def _content(role: str, text: str) -> Dict[str, Any]:
    return {"role": role, "parts": [{"text": text}]}


def _extract_text(data: Dict[str, Any]) -> Optional[str]:
    for candidate in data.get("candidates") or []:
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if text:
            return text
    return None


async def _generate(
    contents: List[Dict[str, Any]],
    *,
    system_instruction: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    _ensure_configured()
    url = f"{settings.GEMINI_BASE_URL.rstrip('/')}/models/{settings.GEMINI_MODEL}:generateContent"
    body: Dict[str, Any] = {"contents": contents}
    if system_instruction:
        body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
    headers = {"x-goog-api-key": settings.GEMINI_API_KEY}

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=httpx.Timeout(settings.ADVISOR_TIMEOUT_SECONDS))
    try:
        response = await client.post(url, json=body, headers=headers)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as exc:
        logger.error("Gemini returned %s", exc.response.status_code)
        raise AdvisorUnavailable("AI assistant request failed") from exc
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Gemini request error: %s", exc)
        raise AdvisorUnavailable("AI assistant request failed") from exc
    finally:
        if owns_client:
            await client.aclose()

    text = _extract_text(data)
    if not text:
        logger.warning("Gemini response contained no text")
        raise AdvisorUnavailable("AI assistant returned an empty response")
    return text


async def analyze_inventory(
    items: Sequence[InventoryItem], *, client: Optional[httpx.AsyncClient] = None
) -> str:
    """Ask for a stock-health report on ``items``."""

    return await _generate([_content("user", build_inventory_prompt(items))], client=client)


async def chat(
    history: Sequence[ChatMessage],
    message: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    contents = [_content(entry.role, entry.text) for entry in history]
    contents.append(_content("user", message))
    return await _generate(contents, system_instruction=PHARMACIST_INSTRUCTION, client=client)
