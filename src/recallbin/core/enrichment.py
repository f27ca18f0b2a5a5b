"""AI enrichment over a failover chain of text-generation providers."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from ..models.config import AppConfig
from ..models.item import AIOutput
from .content_fetcher import ContentFetcher

logger = logging.getLogger(__name__)


TRANSIENT_FAILURES = {"timeout", "network", "ratelimit", "server_error"}

SUGGESTED_CATEGORIES = [
    "technology",
    "programming",
    "design",
    "business",
    "science",
    "education",
    "entertainment",
    "news",
    "health",
    "other",
]


@dataclass
class ProviderAttemptDiagnostics:
    provider_id: str
    model_name: str
    attempted: bool
    succeeded: bool
    failure_type: Optional[str] = None
    message: Optional[str] = None


@dataclass
class EnrichmentResult:
    ai_output: AIOutput
    used_fallback: bool
    provider_trace: List[ProviderAttemptDiagnostics] = field(default_factory=list)


class AIProviderError(Exception):
    """Provider-specific error with failover semantics."""

    def __init__(self, provider_id: str, failure_type: str, message: str):
        super().__init__(message)
        self.provider_id = provider_id
        self.failure_type = failure_type
        self.message = message

    @property
    def is_transient(self) -> bool:
        return self.failure_type in TRANSIENT_FAILURES


class EnrichmentError(Exception):
    """No provider produced a usable response."""

    def __init__(self, message: str, attempts: Optional[List[ProviderAttemptDiagnostics]] = None):
        super().__init__(message)
        self.attempts = attempts or []


def fallback_output(reason: str = "") -> AIOutput:
    """Placeholder annotation used whenever enrichment fails."""
    summary = "Could not generate AI summary (Check API Key)."
    if reason == "timeout":
        summary = "Could not generate AI summary (AI service timed out)."
    return AIOutput(
        content_type="unknown",
        summary=summary,
        key_ideas=["Ensure GEMINI_API_KEY (or another provider key) is set in the .env file"],
        tags=["error", "setup-required"],
        entities=[],
        tone="neutral",
        confidence_level="low",
        suggested_search_queries=[],
    )


class EnrichmentService:
    """Produces structured annotations for saved content."""

    def __init__(self, config: AppConfig, content_fetcher: Optional[ContentFetcher] = None):
        self.config = config
        self.content_fetcher = content_fetcher or ContentFetcher(
            timeout=config.fetch_timeout_seconds,
            max_chars=config.max_extracted_chars,
        )

    async def summarize(
        self,
        url: str,
        title: str,
        description: str,
        content_text: str,
        platform: str,
    ) -> EnrichmentResult:
        """Annotate content; never raises, substituting the fallback on failure."""
        context_text = content_text or ""
        if url and len(context_text) < self.config.min_content_length:
            logger.info(f"Scraping {url} for enrichment context")
            scraped = await self.content_fetcher.extract_text(url)
            if scraped:
                context_text = scraped

        prompt = self._build_summary_prompt(url, title, description, context_text, platform)

        try:
            text, attempts = await self._generate(prompt)
            payload = self.parse_json_payload(text)
            if not isinstance(payload, dict):
                raise ValueError("Model response is not a JSON object")
            return EnrichmentResult(AIOutput.model_validate(payload), False, attempts)
        except EnrichmentError as e:
            reason = "timeout" if any(a.failure_type == "timeout" for a in e.attempts) else ""
            logger.warning(f"AI generation failed, using fallback summary: {e}")
            return EnrichmentResult(fallback_output(reason), True, e.attempts)
        except (json.JSONDecodeError, ValueError, ValidationError) as e:
            logger.warning(f"AI response could not be parsed, using fallback summary: {e}")
            return EnrichmentResult(fallback_output(), True, [])
        except Exception as e:
            logger.error(f"Unexpected enrichment failure, using fallback summary: {e}")
            return EnrichmentResult(fallback_output(), True, [])

    async def rank_items(self, query: str, items_context: List[dict]) -> Tuple[str, List[int]]:
        """Ask the model which saved items answer a natural-language query.

        Raises:
            EnrichmentError: If no provider answers or the answer is unusable
        """
        prompt = self._build_chat_prompt(query, items_context)
        text, _ = await self._generate(prompt)
        try:
            payload = self.parse_json_payload(text)
        except json.JSONDecodeError as e:
            raise EnrichmentError(f"Chat response was not JSON: {e}") from e
        if not isinstance(payload, dict):
            raise EnrichmentError("Chat response was not a JSON object")

        indices: List[int] = []
        for raw in payload.get("relevantIndices") or payload.get("relevant_indices") or []:
            try:
                idx = int(raw)
            except (TypeError, ValueError):
                continue
            if 0 <= idx < len(items_context) and idx not in indices:
                indices.append(idx)

        response = str(payload.get("response") or "Here are some items I found.")
        return response, indices

    def get_provider_status(self) -> list[dict]:
        """Return provider configuration status for diagnostics endpoints."""
        result: List[dict] = []
        for provider_id in self._ordered_providers():
            cfg = self._provider_config(provider_id)
            if not cfg:
                continue
            result.append(
                {
                    "provider_id": provider_id,
                    "enabled": cfg["enabled"],
                    "model": cfg["model"],
                    "has_endpoint": bool(cfg["endpoint"]),
                    "key_count": len(cfg["api_keys"]),
                }
            )
        return result

    async def _generate(self, prompt: str) -> Tuple[str, List[ProviderAttemptDiagnostics]]:
        """Run the provider chain under the overall AI timeout."""
        attempts: List[ProviderAttemptDiagnostics] = []
        try:
            text = await asyncio.wait_for(
                self._run_chain(prompt, attempts),
                timeout=self.config.ai_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            attempts.append(
                ProviderAttemptDiagnostics(
                    "chain", "", True, False, "timeout",
                    f"No response within {self.config.ai_timeout_seconds}s",
                )
            )
            raise EnrichmentError("AI request timed out", attempts) from e

        if text is None:
            failures = ", ".join(f"{a.provider_id}: {a.failure_type}" for a in attempts)
            raise EnrichmentError(f"All AI providers failed ({failures or 'none configured'})", attempts)
        return text, attempts

    async def _run_chain(
        self, prompt: str, attempts: List[ProviderAttemptDiagnostics]
    ) -> Optional[str]:
        for provider_id in self._ordered_providers():
            provider_cfg = self._provider_config(provider_id)
            model = provider_cfg["model"] if provider_cfg else ""
            if provider_cfg is None or not provider_cfg["enabled"]:
                attempts.append(
                    ProviderAttemptDiagnostics(
                        provider_id, model, False, False,
                        "configuration", "Provider disabled or unknown",
                    )
                )
                continue

            try:
                text = await self._generate_text(provider_id, prompt)
                attempts.append(ProviderAttemptDiagnostics(provider_id, model, True, True))
                return text
            except AIProviderError as e:
                attempts.append(
                    ProviderAttemptDiagnostics(
                        provider_id, model, True, False, e.failure_type, e.message
                    )
                )
                if e.failure_type == "authentication":
                    break
                continue

        return None

    def _ordered_providers(self) -> list[str]:
        default_order = ["gemini", "openai", "azureopenai", "anthropic"]
        configured = [p.strip().lower() for p in self.config.ai_providers if p.strip()]
        if not configured:
            configured = default_order
        return list(dict.fromkeys(configured))

    def _provider_config(self, provider_id: str) -> Optional[dict]:
        if provider_id == "gemini":
            return {
                "enabled": self.config.gemini_enabled,
                "endpoint": self.config.gemini_endpoint,
                "model": self.config.gemini_model,
                "api_keys": self.config.gemini_api_keys,
            }
        if provider_id == "openai":
            return {
                "enabled": self.config.openai_enabled,
                "endpoint": self.config.openai_endpoint,
                "model": self.config.openai_model,
                "api_keys": self.config.openai_api_keys,
            }
        if provider_id == "azureopenai":
            return {
                "enabled": self.config.azure_openai_enabled,
                "endpoint": self.config.azure_openai_endpoint,
                "model": self.config.azure_openai_model,
                "api_keys": self.config.azure_openai_api_keys,
            }
        if provider_id == "anthropic":
            return {
                "enabled": self.config.anthropic_enabled,
                "endpoint": self.config.anthropic_endpoint,
                "model": self.config.anthropic_model,
                "api_keys": self.config.anthropic_api_keys,
            }
        return None

    async def _generate_text(self, provider_id: str, prompt: str) -> str:
        cfg = self._provider_config(provider_id)
        if not cfg:
            raise AIProviderError(provider_id, "configuration", "Unknown provider")

        endpoint = cfg["endpoint"]
        model = cfg["model"]
        api_keys = cfg["api_keys"]
        if not endpoint:
            raise AIProviderError(provider_id, "configuration", "Endpoint is not configured")
        if not model:
            raise AIProviderError(provider_id, "configuration", "Model is not configured")
        if not api_keys:
            raise AIProviderError(provider_id, "configuration", "API key is not configured")

        timeout = self.config.ai_timeout_seconds

        last_error: Optional[AIProviderError] = None
        for api_key in api_keys:
            try:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    if provider_id == "gemini":
                        response = await client.post(
                            endpoint.replace("{model}", model),
                            headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
                            json={
                                "contents": [{"parts": [{"text": prompt}]}],
                                "generationConfig": {"temperature": 0.2},
                            },
                        )
                        self._raise_for_status(provider_id, response)
                        data = response.json()
                        return data["candidates"][0]["content"]["parts"][0]["text"]

                    if provider_id in {"openai", "azureopenai"}:
                        headers = {"Content-Type": "application/json"}
                        if provider_id == "openai":
                            headers["Authorization"] = f"Bearer {api_key}"
                        else:
                            headers["api-key"] = api_key
                        body = {
                            "model": model,
                            "messages": [
                                {"role": "system", "content": "You output compact JSON only."},
                                {"role": "user", "content": prompt},
                            ],
                        }
                        response = await client.post(endpoint, headers=headers, json=body)
                        self._raise_for_status(provider_id, response)
                        data = response.json()
                        return data["choices"][0]["message"]["content"]

                    if provider_id == "anthropic":
                        headers = {
                            "x-api-key": api_key,
                            "anthropic-version": "2023-06-01",
                            "content-type": "application/json",
                        }
                        body = {
                            "model": model,
                            "max_tokens": 1024,
                            "messages": [{"role": "user", "content": prompt}],
                            "temperature": 0.2,
                        }
                        response = await client.post(endpoint, headers=headers, json=body)
                        self._raise_for_status(provider_id, response)
                        chunks = response.json().get("content", [])
                        return "\n".join(
                            chunk.get("text", "") for chunk in chunks if chunk.get("type") == "text"
                        ).strip()

                    raise AIProviderError(provider_id, "configuration", "Unsupported provider")
            except AIProviderError as e:
                last_error = e
                if not e.is_transient:
                    raise
                continue
            except httpx.TimeoutException:
                last_error = AIProviderError(provider_id, "timeout", "Request timed out")
                continue
            except httpx.NetworkError as e:
                last_error = AIProviderError(provider_id, "network", f"Network error: {e}")
                continue
            except (KeyError, IndexError, TypeError, ValueError) as e:
                last_error = AIProviderError(provider_id, "invalid_response", f"Unexpected response shape: {e}")
                continue

        raise last_error or AIProviderError(provider_id, "unknown", "Provider request failed")

    def _raise_for_status(self, provider_id: str, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        message = response.text[:500]
        if response.status_code in {401, 403}:
            raise AIProviderError(provider_id, "authentication", message)
        if response.status_code == 429:
            raise AIProviderError(provider_id, "ratelimit", message)
        if response.status_code >= 500:
            raise AIProviderError(provider_id, "server_error", message)
        raise AIProviderError(provider_id, "invalid_request", message)

    def _build_summary_prompt(
        self, url: str, title: str, description: str, context_text: str, platform: str
    ) -> str:
        limit = self.config.max_prompt_context_chars
        context = context_text[:limit] if context_text else "No text available, infer from title"
        return (
            "You are RecallBin AI. Your goal is to summarize web content for future recall.\n\n"
            "Input Data:\n"
            f"URL: {url}\n"
            f"Title: {title}\n"
            f"Description: {description}\n"
            f"Platform: {platform}\n"
            f"Context: {context}\n\n"
            "Output ONLY valid JSON (no markdown formatting) with this structure:\n"
            "{\n"
            '  "title": "Short, descriptive title (3-6 words capturing the main topic)",\n'
            '  "content_type": "article|video|documentation|tool|other",\n'
            f'  "category": "one of: {"|".join(SUGGESTED_CATEGORIES)}",\n'
            '  "summary": "2 sentences explaining what this is and why I might want to save it.",\n'
            '  "key_ideas": ["3 bullet points", "capturing main value"],\n'
            '  "tags": ["5", "lowercase", "keywords"],\n'
            '  "entities": ["Names", "Companies", "Tools"],\n'
            '  "tone": "informative|technical|entertainment",\n'
            '  "confidence_level": "high|medium|low",\n'
            '  "suggested_search_queries": ["how to...", "what is..."]\n'
            "}"
        )

    def _build_chat_prompt(self, query: str, items_context: List[dict]) -> str:
        return (
            "You are a helpful assistant that helps users find content from their saved items.\n\n"
            f'User Query: "{query}"\n\n'
            f"Saved Items (max {len(items_context)}):\n"
            f"{json.dumps(items_context, indent=2)}\n\n"
            "Task: Analyze the query and find the most relevant saved items. "
            "Return a JSON response with:\n"
            "{\n"
            '  "response": "A friendly natural language response (2-3 sentences)",\n'
            f'  "relevantIndices": [indices of relevant items from 0 to {max(len(items_context) - 1, 0)}]\n'
            "}\n\n"
            "Only return valid JSON, no markdown formatting."
        )

    def parse_json_payload(self, text: str) -> Any:
        """Parse model output, tolerating code fences and surrounding prose."""
        candidate = (text or "").strip()
        if "```" in candidate:
            candidate = candidate.replace("```json", "").replace("```", "").strip()
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            extracted = self._extract_first_json_object(candidate)
            if extracted is not None:
                return extracted
            raise

    def _extract_first_json_object(self, text: str) -> Optional[Dict[str, Any]]:
        """Extract first valid JSON object from mixed model output."""
        decoder = json.JSONDecoder()
        for idx, char in enumerate(text):
            if char != "{":
                continue
            try:
                parsed, _ = decoder.raw_decode(text[idx:])
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
        return None
