import asyncio
import json
import logging
import os
import random
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from langdetect import DetectorFactory, LangDetectException, detect

from src.integrations.clients.real_http.anthropic import AnthropicAPIError, AnthropicMessagesClient
from src.utils.app_config_loader import AIConfig, get_app_config

logger = logging.getLogger(__name__)

# langdetect is probabilistic; pin the seed so short texts classify the same way every run
DetectorFactory.seed = 0

SYSTEM_PROMPTS = {
    "en": (
        "You are an expert CV optimizer for the Egyptian job market. Improve clarity, use strong action verbs, "
        "and align keywords for ATS. Preserve the exact JSON schema without adding new fields."
    ),
    "ar": (
        "أنت خبير في تحسين السير الذاتية لسوق العمل المصري والعربي. حسّن اللغة، استخدم أفعال إنجاز قوية، "
        "ووازن الكلمات المفتاحية مع أنظمة ATS. حافظ على نفس بنية JSON دون إضافة حقول جديدة."
    ),
}

SECTION_GUIDANCE = {
    "experience": {
        "en": "Experience: Rewrite roles to start with action verbs (Led, Built, Improved), add measurable impact "
        "when possible, keep descriptions concise and clear.",
        "ar": "الخبرات: أعد صياغة الأدوار لتبدأ بأفعال إنجاز (قمت، قدت، طورت)، أضف مقاييس عند الإمكان، واجعل الوصف موجزًا وواضحًا.",
    },
    "summary": {
        "en": "Summary: Short paragraph highlighting value and core relevant skills; avoid fluff.",
        "ar": "الملخص: اكتب فقرة قصيرة تركّز على القيمة والمهارات الأساسية ذات الصلة، بدون حشو.",
    },
    "skills": {
        "en": "Skills: Normalize wording, merge synonyms, and keep consistent naming.",
        "ar": "المهارات: نظّم المهارات بوضوح، وادمج المرادفات، وحافظ على الاتساق.",
    },
    "education": {
        "en": "Education: Ensure dates and degrees are formatted professionally and concisely.",
        "ar": "التعليم: تأكد من تنسيق التواريخ والألقاب الأكاديمية بشكل مهني ومختصر.",
    },
}

_INTRO = {
    "en": "Enhance the following CV while preserving the exact JSON structure. Do not add new fields. "
    "Use the same language (Arabic/English) as the input.",
    "ar": "قم بتحسين السيرة الذاتية التالية مع الحفاظ على نفس بنية JSON. لا تُدخل حقولًا جديدة. "
    "استخدم اللغة المحددة (عربية/إنجليزية) كما في الإدخال.",
}

_JSON_ONLY = {"en": "Return JSON only, no extra prose.", "ar": "أعد JSON فقط دون نص إضافي."}

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


@dataclass
class EnhancementResult:
    ok: bool
    reason: Optional[str] = None    # missing_api_key / api_error / parse_error / network_error
    data: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    model: Optional[str] = None


def _collect_text(data: Dict[str, Any]) -> str:
    parts: List[str] = []
    for key in ("summary", "title", "fullName"):
        value = data.get(key)
        if isinstance(value, str):
            parts.append(value)
    for item in data.get("experience") or []:
        if isinstance(item, dict):
            parts.extend(str(item.get(k) or "") for k in ("role", "description"))
    return " ".join(p for p in parts if p.strip())


def detect_locale(data: Dict[str, Any]) -> str:
    text = _collect_text(data)
    if not text:
        return "en"
    try:
        return "ar" if detect(text) == "ar" else "en"
    except LangDetectException:
        return "en"


def build_user_prompt(data: Dict[str, Any], locale: str) -> str:
    lang = "ar" if locale == "ar" else "en"
    lines: List[str] = []
    if isinstance(data.get("experience"), list) and data["experience"]:
        lines.append(SECTION_GUIDANCE["experience"][lang])
    if isinstance(data.get("summary"), str):
        lines.append(SECTION_GUIDANCE["summary"][lang])
    if isinstance(data.get("skills"), list) and data["skills"]:
        lines.append(SECTION_GUIDANCE["skills"][lang])
    if isinstance(data.get("education"), list) and data["education"]:
        lines.append(SECTION_GUIDANCE["education"][lang])

    prompt = _INTRO[lang]
    if lines:
        prompt += "\n- " + "\n- ".join(lines)
    return f"{prompt}\n{_JSON_ONLY[lang]}"


def parse_model_json(text: str) -> Optional[Dict[str, Any]]:
    """Parse a model reply as a JSON object, unwrapping a ```json fence if present."""
    content = (text or "").strip()
    match = _FENCE_RE.search(content)
    if match:
        content = match.group(1).strip()
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def fallback_enhance(data: Dict[str, Any], locale: str = "en") -> Dict[str, Any]:
    """Minimal local touch-up used when the model call fails."""
    enhanced = dict(data)
    if isinstance(enhanced.get("experience"), list):
        items = []
        for item in enhanced["experience"]:
            if not isinstance(item, dict):
                items.append(item)
                continue
            item = dict(item)
            role = item.get("role")
            if role:
                role = str(role)
                item["role"] = role[:1].upper() + role[1:]
            if item.get("description"):
                item["description"] = f"• {item['description']}"
            items.append(item)
        enhanced["experience"] = items
    if isinstance(enhanced.get("summary"), str) and enhanced["summary"]:
        enhanced["summary"] = f"✔ {enhanced['summary']}"
    return enhanced


def _debug_enabled() -> bool:
    return bool(os.getenv("ANTHROPIC_DEBUG"))


class CvEnhancer:
    def __init__(self, backend: Optional[str] = None, config: Optional[AIConfig] = None, max_attempts: int = 3):
        self.config = config or get_app_config().ai
        self.backend = (backend or self.config.backend).lower()
        self.max_attempts = max_attempts

    def default_model(self) -> str:
        if self.backend == "anthropic":
            return self.config.anthropic_model
        return self.config.gemini_model

    async def enhance(self, data: Dict[str, Any], locale: str, model: Optional[str] = None) -> EnhancementResult:
        model = model or self.default_model()
        prompt = build_user_prompt(data, locale)
        system = SYSTEM_PROMPTS["ar" if locale == "ar" else "en"]
        logger.info("Enhancing CV with %s model=%s locale=%s", self.backend, model, locale)

        if self.backend == "anthropic":
            return await self._enhance_anthropic(data, prompt, system, model)
        return await self._enhance_gemini(data, prompt, system, model)

    async def _enhance_gemini(self, data: Dict[str, Any], prompt: str, system: str, model: str) -> EnhancementResult:
        api_key = os.environ.get("GEMINI_API_KEY")
        if not api_key:
            return EnhancementResult(
                ok=False,
                reason="missing_api_key",
                message="Gemini API key is not configured. Set GEMINI_API_KEY in environment to enable live enhancement.",
            )

        client = genai.Client(api_key=api_key)
        contents = f"{prompt}\nJSON:\n{json.dumps(data, ensure_ascii=False)}"

        def _sync_generate():
            return client.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(
                    system_instruction=system,
                    temperature=self.config.temperature,
                    max_output_tokens=self.config.max_output_tokens,
                    response_mime_type="application/json",
                ),
            )

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await asyncio.to_thread(_sync_generate)
                break
            except genai_errors.ServerError as e:
                if attempt >= self.max_attempts:
                    logger.error("Gemini server error after %s attempts: %s", attempt, e)
                    return EnhancementResult(ok=False, reason="api_error", message=str(e))
                backoff = (2 ** (attempt - 1)) + random.uniform(0, 0.5)
                logger.warning(
                    "Gemini request failed on attempt %s/%s. Retrying in %.2fs...",
                    attempt,
                    self.max_attempts,
                    backoff,
                )
                await asyncio.sleep(backoff)
            except genai_errors.APIError as e:
                logger.error("Gemini API error: %s", e)
                return EnhancementResult(ok=False, reason="api_error", message=str(e))
            except (httpx.HTTPError, OSError) as e:
                logger.error("Gemini network error: %s: %s", type(e).__name__, e)
                return EnhancementResult(ok=False, reason="network_error", message=str(e) or "Network error")

        text = (getattr(response, "text", "") or "").strip()
        return self._parsed_result(text, model)

    async def _enhance_anthropic(self, data: Dict[str, Any], prompt: str, system: str, model: str) -> EnhancementResult:
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            return EnhancementResult(
                ok=False,
                reason="missing_api_key",
                message="Anthropic API key is not configured. Set ANTHROPIC_API_KEY in environment to enable live enhancement.",
            )

        client = AnthropicMessagesClient(api_key=api_key, timeout_seconds=self.config.timeout_seconds)
        content = [
            {"type": "text", "text": prompt},
            {"type": "text", "text": "JSON:"},
            {"type": "text", "text": json.dumps(data, ensure_ascii=False)},
        ]
        try:
            text = await client.create_message(
                system=system,
                content=content,
                model=model,
                max_tokens=self.config.max_output_tokens,
            )
        except AnthropicAPIError as e:
            if _debug_enabled():
                logger.error("[Claude API Error] %s %s", e.status_code, e.body)
            return EnhancementResult(ok=False, reason="api_error", message=e.body)
        except httpx.HTTPError as e:
            if _debug_enabled():
                logger.error("[Claude Network Error] %s", e)
            return EnhancementResult(ok=False, reason="network_error", message=str(e) or "Network error")

        return self._parsed_result(text, model)

    def _parsed_result(self, text: str, model: str) -> EnhancementResult:
        enhanced = parse_model_json(text)
        if enhanced is None:
            logger.warning("Could not parse model reply as JSON: %s", text[:200])
            return EnhancementResult(ok=False, reason="parse_error", message="Failed to parse model response.")
        return EnhancementResult(ok=True, data=enhanced, model=model)
