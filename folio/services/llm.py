"""
LLM collaborator - Folio Pipeline Engine
folio/services/llm.py

Thin async client over the OpenAI chat completions REST API. Every call is
bounded by LLM_TIMEOUT_SECONDS; transport errors, non-2xx responses and
unparseable JSON surface as CollaboratorError so the executor retries them.
"""
import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from pydantic import BaseModel, Field, ValidationError

from folio.config import settings
from folio.core.exceptions import CollaboratorError
from folio.models.career import StructuredResume

logger = logging.getLogger(__name__)

COPYWRITER_SYSTEM = "You are an expert portfolio copywriter."

STRUCTURE_PROMPT = """Extract structured information from this resume text.

Resume:
{resume_text}

Return a JSON object with:
1. first_name, last_name, headline (one-line professional title)
2. work_experiences: array of jobs with company, role, start_date (YYYY-MM),
   end_date (YYYY-MM or null if current), description, and achievements:
   array of accomplishments with text, metric_value (number if quantified),
   metric_unit (e.g. "percent", "million", "users"), scope (e.g. "company-wide", "team")
3. skills: array of skills with name and category (e.g. "technical", "leadership")

Copy numbers exactly as written. Return ONLY valid JSON."""

OPENER_PROMPT = """Write a one-line opener for the portfolio of a {role} with these key achievements:
{achievements}

A single sentence, max 15 words, confident but not arrogant, specific but not jargon-heavy."""

NARRATIVE_PROMPT = """Write 2-3 narrative paragraphs for a {role}'s portfolio story section.

Work experience:
{experiences}

First person, focused on impact and growth, 3-4 sentences per paragraph.
Separate paragraphs with a blank line."""

QUOTE_PROMPT = """Suggest an inspirational quote relevant to a {role} in {industry}.
Format: "Quote text" - Attribution"""

OFFERS_PROMPT = """Turn these {category} skills into client-ready service offerings.

Skills: {skills}

Related achievements:
{achievements}

Return JSON: {{"offers": [{{"skill_name": str, "offer_statement": str, "proof_points": [str]}}]}}
offer_statement is one client-focused sentence; proof_points are 2-3 items taken
from the achievements above. Return ONLY valid JSON."""

IMPACT_PROMPT = """Rewrite this achievement as a concise impact statement (max 2 sentences).

Original: {raw_text}

Keep every number, percentage and metric EXACTLY as written.
Return only the statement."""


class GeneratedOffer(BaseModel):
    skill_name: str
    offer_statement: str
    proof_points: List[str] = Field(default_factory=list)


class LLMClient:
    """Async chat-completions client used by the step handlers."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if api_key is None and settings.OPENAI_API_KEY:
            api_key = settings.OPENAI_API_KEY.get_secret_value()
        self.api_key = api_key
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self.model = model or settings.DEFAULT_LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._transport = transport

    async def _chat(
        self,
        prompt: str,
        system: str = COPYWRITER_SYSTEM,
        max_tokens: int = 500,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        if not self.api_key:
            raise CollaboratorError("llm", "OPENAI_API_KEY is not configured")

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/chat/completions",
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"LLM request failed: {e}")
            raise CollaboratorError("llm", str(e) or type(e).__name__) from e

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise CollaboratorError("llm", f"malformed completion: {e}") from e
        return content.strip()

    async def _chat_json(self, prompt: str, system: str, max_tokens: int, temperature: float) -> Dict[str, Any]:
        content = await self._chat(prompt, system, max_tokens, temperature, json_mode=True)
        try:
            parsed = json.loads(content or "{}")
        except json.JSONDecodeError as e:
            raise CollaboratorError("llm", f"invalid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise CollaboratorError("llm", "expected a JSON object")
        return parsed

    # ------------------------------------------------------------------
    # Collaborator operations
    # ------------------------------------------------------------------

    async def structure_resume(self, resume_text: str) -> StructuredResume:
        parsed = await self._chat_json(
            STRUCTURE_PROMPT.format(resume_text=resume_text),
            system="You are an expert resume parser. Return only valid JSON.",
            max_tokens=3000,
            temperature=0.1,
        )
        try:
            return StructuredResume.model_validate(parsed)
        except ValidationError as e:
            raise CollaboratorError("llm", f"structured resume did not validate: {e}") from e

    async def story_opener(self, role: str, achievements: Sequence[str]) -> str:
        return await self._chat(
            OPENER_PROMPT.format(role=role, achievements="\n".join(achievements)),
            max_tokens=100,
        )

    async def narrative_paragraphs(self, role: str, experiences: Sequence[Dict[str, Any]]) -> List[str]:
        content = await self._chat(
            NARRATIVE_PROMPT.format(role=role, experiences=json.dumps(list(experiences), indent=2, default=str)),
            max_tokens=600,
        )
        return [p.strip() for p in content.split("\n\n") if p.strip()]

    async def inspirational_quote(self, role: str, industry: str) -> Tuple[str, str]:
        content = await self._chat(
            QUOTE_PROMPT.format(role=role, industry=industry),
            system="You are a quote curator for professional portfolios.",
            max_tokens=100,
            temperature=0.8,
        )
        quote, _, attribution = content.partition(" - ")
        return quote.replace('"', "").strip(), attribution.strip() or "Unknown"

    async def skill_offers(
        self,
        category: str,
        skill_names: Sequence[str],
        achievement_texts: Sequence[str],
    ) -> List[GeneratedOffer]:
        parsed = await self._chat_json(
            OFFERS_PROMPT.format(
                category=category,
                skills=", ".join(skill_names),
                achievements="\n".join(achievement_texts) or "(none)",
            ),
            system="You translate technical skills into business value propositions.",
            max_tokens=1000,
            temperature=0.6,
        )
        offers = []
        for item in parsed.get("offers", []):
            try:
                offers.append(GeneratedOffer.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping malformed skill offer: {e}")
        return offers

    async def impact_statement(self, raw_text: str) -> str:
        return await self._chat(
            IMPACT_PROMPT.format(raw_text=raw_text),
            system="You write professional achievement statements and always preserve exact numeric values.",
            max_tokens=150,
            temperature=0.5,
        )


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient()
