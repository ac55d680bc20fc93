from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from cvmatch.core.errors import ExtractionFailure, LLMError
from cvmatch.schemas.keywords import CATEGORIES, DocumentKind, GroupedKeywords, ParsedSections
from cvmatch.services.llm import fence_untrusted, json_completion_required

from . import prompts

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return ", ".join(str(item).strip() for item in value if str(item).strip())
    if isinstance(value, dict):
        return "; ".join(f"{key}: {_as_text(item)}" for key, item in value.items() if _as_text(item))
    return str(value).strip()


class LLMExtractor:
    """Extraction through JSON-mode chat completions. Every failure surfaces as ExtractionFailure."""

    async def _complete(self, *, system_prompt: str, user_prompt: str, temperature: float, task: str) -> dict[str, Any]:
        try:
            return await json_completion_required(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=temperature,
                max_output_tokens=1500,
                task=task,
            )
        except LLMError as exc:
            raise ExtractionFailure(str(exc), code=exc.code) from exc

    async def parse(self, kind: DocumentKind, text: str) -> ParsedSections:
        if kind == "cv":
            system_prompt = prompts.CV_PARSE_SYSTEM_PROMPT
            user_prompt = f"{prompts.CV_PARSE_INSTRUCTIONS}\n{fence_untrusted('CV', text[: prompts.MAX_CV_PARSE_CHARS])}"
        else:
            system_prompt = prompts.JOB_PARSE_SYSTEM_PROMPT
            user_prompt = f"{prompts.JOB_PARSE_INSTRUCTIONS}\n{fence_untrusted('JOB', text[: prompts.MAX_JOB_PARSE_CHARS])}"

        payload = await self._complete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=prompts.PARSE_TEMPERATURE,
            task=f"parse_{kind}",
        )
        sections = ParsedSections(
            hardSkills=_as_text(payload.get("hardSkills")),
            softSkills=_as_text(payload.get("softSkills")),
            experience=_as_text(payload.get("experience")) or _as_text(payload.get("responsibilities")),
            education=_as_text(payload.get("education")),
            summary=_as_text(payload.get("summary")),
        )
        if not any(sections.section(category) for category in CATEGORIES):
            raise ExtractionFailure(f"LLM returned no sections for {kind}.", code="empty_extraction")
        logger.info("llm_parse_ok kind=%s", kind)
        return sections

    async def extract_keywords(
        self,
        kind: DocumentKind,
        sections: ParsedSections,
        source_text: str = "",
    ) -> GroupedKeywords:
        section_lines = "\n".join(
            f"{category}: {sections.section(category)[:limit]}"
            for category, limit in prompts.SECTION_LIMITS.items()
        )
        if kind == "cv":
            system_prompt = prompts.CV_KEYWORD_SYSTEM_PROMPT
            user_prompt = f"{prompts.CV_KEYWORD_INSTRUCTIONS}\n{fence_untrusted('CV SECTIONS', section_lines)}"
        else:
            system_prompt = prompts.JOB_KEYWORD_SYSTEM_PROMPT
            user_prompt = f"{prompts.JOB_KEYWORD_INSTRUCTIONS}\n{fence_untrusted('JOB SECTIONS', section_lines)}"

        payload = await self._complete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=prompts.KEYWORD_TEMPERATURE,
            task=f"keywords_{kind}",
        )
        missing = [category for category in CATEGORIES if category not in payload]
        if missing:
            logger.warning("llm_keywords_missing_categories kind=%s missing=%s", kind, ",".join(missing))

        try:
            keywords = GroupedKeywords(groups=payload)
        except ValidationError as exc:
            raise ExtractionFailure(f"LLM keyword payload did not match the schema: {exc}", code="invalid_schema") from exc

        if not any(keywords.keywords(category) for category in CATEGORIES):
            raise ExtractionFailure(f"LLM returned no keywords for {kind}.", code="empty_extraction")
        logger.info(
            "llm_keywords_ok kind=%s counts=%s",
            kind,
            {category: len(keywords.keywords(category)) for category in CATEGORIES},
        )
        return keywords
