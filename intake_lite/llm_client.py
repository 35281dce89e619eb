"""
LLM Client for Document Analysis
================================

Supports:
- OpenRouter (Claude, GPT, Mistral, etc.)

Used for:
- Summarizing uploaded documents into AnalysisResult JSON

NOT required for basic operation: with LLM_MODE=none every analysis
comes back with confidence 0 and the user is asked to describe the
document instead.
"""

import json
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import httpx

from .config import get_settings
from .schemas import LLMMode

logger = logging.getLogger(__name__)


# =============================================================================
# Robust JSON Parser
# =============================================================================

def _strip_code_fence(content: str) -> str:
    for fence in ("```json", "```"):
        start = content.find(fence)
        if start == -1:
            continue
        start += len(fence)
        end = content.find("```", start)
        if end > start:
            return content[start:end].strip()
    return content


def _brace_blocks(content: str):
    depth = 0
    start_idx = None
    for i, char in enumerate(content):
        if char == '{':
            if depth == 0:
                start_idx = i
            depth += 1
        elif char == '}' and depth > 0:
            depth -= 1
            if depth == 0 and start_idx is not None:
                yield content[start_idx:i + 1]
                start_idx = None


def parse_json_robust(content: str) -> Tuple[Optional[Dict], bool, str]:
    """
    Parse a JSON object out of model output.

    Handles markdown code fences, prose before or after the object, and
    several objects in one reply (the largest parseable one wins).

    Returns:
        Tuple of (parsed_dict, success, error_message)
    """
    if not content or not content.strip():
        return None, False, "Empty content"

    content = _strip_code_fence(content.strip())

    try:
        data = json.loads(content)
        if isinstance(data, dict):
            return data, True, ""
    except json.JSONDecodeError:
        pass

    for block in sorted(_brace_blocks(content), key=len, reverse=True):
        try:
            return json.loads(block), True, ""
        except json.JSONDecodeError:
            continue

    return None, False, "No JSON object found"


def safe_log_content(content: str, max_chars: int = 120) -> str:
    """Length, hash and short preview; never the whole text"""
    if not content:
        return "(empty)"

    content_hash = hashlib.sha256(content.encode()).hexdigest()[:12]
    preview = content[:max_chars].replace('\n', ' ')
    return f"len={len(content)} hash={content_hash} preview='{preview}...'"


@dataclass
class LLMResponse:
    """Response from LLM"""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


class LLMClient:
    """
    OpenRouter chat-completions client.

    Usage:
        client = LLMClient()
        response = await client.generate("Summarize this document...")
    """

    def __init__(self):
        self.settings = get_settings()
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.llm_timeout)
        return self._http_client

    async def close(self):
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        max_tokens: int = 1024,
        temperature: float = 0.2
    ) -> Optional[LLMResponse]:
        """
        Generate a completion.

        Returns:
            LLMResponse, or None when the LLM is disabled or the call failed
        """
        if self.settings.llm_mode == LLMMode.NONE:
            logger.debug("LLM mode is NONE, skipping")
            return None

        if not self.settings.openrouter_api_key:
            logger.warning("OpenRouter API key not set")
            return None

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.settings.openrouter_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {
            "Authorization": f"Bearer {self.settings.openrouter_api_key}",
            "Content-Type": "application/json",
            "X-Title": "Legal Intake Document Analysis",
        }

        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.settings.openrouter_base_url}/chat/completions",
                json=payload,
                headers=headers
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"OpenRouter API error: {e.response.status_code} - {e.response.text[:200]}")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"OpenRouter request failed: {e}")
            return None

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"OpenRouter response missing content: {e}")
            return None

        usage = data.get("usage", {}) or {}
        return LLMResponse(
            content=content or "",
            model=self.settings.openrouter_model,
            usage={
                "input_tokens": usage.get("prompt_tokens", 0),
                "output_tokens": usage.get("completion_tokens", 0),
            },
        )


# Singleton
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get singleton LLM client"""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client


# =============================================================================
# Document analysis
# =============================================================================

DOCUMENT_ANALYSIS_SYSTEM_PROMPT = """You are a legal intake assistant reviewing a document a prospective client uploaded.

Return ONLY a JSON object with this structure:
{
  "summary": "2-4 sentence plain-language summary",
  "entities": {"people": ["..."], "orgs": ["..."], "dates": ["..."]},
  "key_facts": ["..."],
  "action_items": ["..."],
  "confidence": 0.0-1.0
}

Do not give legal advice. If the text is unreadable or empty, set confidence to 0."""

RETRY_PROMPT = """Return ONLY a valid JSON object with keys "summary", "entities", "key_facts", "action_items", "confidence". No prose, no markdown."""


async def analyze_text_with_llm(text: str, question: str, file_name: str = "") -> Optional[Dict]:
    """
    Ask the LLM to analyze document text.

    Retries once with a correction prompt when the first reply is not
    parseable JSON.

    Returns:
        Parsed dict, or None if the LLM is unavailable or never produced JSON
    """
    client = get_llm_client()
    prompt = f"Document: {file_name or 'uploaded file'}\n\nQuestion: {question}\n\n---\n{text}"

    response = await client.generate(
        prompt=prompt,
        system_prompt=DOCUMENT_ANALYSIS_SYSTEM_PROMPT,
        json_mode=True,
        max_tokens=1024,
        temperature=0,
    )
    if not response:
        return None

    logger.debug(f"LLM analysis response: {safe_log_content(response.content)}")
    data, ok, error = parse_json_robust(response.content)
    if ok and data:
        return data

    logger.warning(f"First LLM parse failed: {error}, attempting retry")
    retry = await client.generate(
        prompt=f"{prompt}\n\n{RETRY_PROMPT}",
        system_prompt=DOCUMENT_ANALYSIS_SYSTEM_PROMPT,
        json_mode=True,
        max_tokens=1024,
        temperature=0,
    )
    if not retry or not retry.content:
        logger.error("LLM retry returned empty")
        return None

    data, ok, error = parse_json_robust(retry.content)
    if ok and data:
        logger.info("LLM retry successful")
        return data

    logger.error(f"LLM JSON parse failed after retry: {error}")
    return None
