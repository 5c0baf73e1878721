"""
Gemini-backed reasoning service.

Calls Google Gemini through `google.generativeai`, asks for a JSON object
and validates it into the pydantic schemas. Every SDK error, empty answer,
malformed JSON or schema violation is turned into ContentGenerationFailure
(content calls) or GradingFailure (grading calls).
"""

from __future__ import annotations

import json
import random
import re
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from wortschatz.core.errors import ContentGenerationFailure, GradingFailure
from wortschatz.core.models import WordCategory
from wortschatz.reasoning import prompts
from wortschatz.reasoning.schemas import (
    ClozeContent,
    ExampleSentence,
    Judgment,
    QuizQuestion,
    WordDetails,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def pick_api_key(api_key: str | None = None, api_keys: str | list[str] | None = None) -> str | None:
    """
    Choose the API key for a client.

    A comma-separated key list wins over the single key; one key is drawn at
    random per client to spread quota across keys.
    """
    if isinstance(api_keys, str):
        api_keys = api_keys.split(",")
    keys = [k.strip() for k in (api_keys or []) if k and k.strip()]
    if keys:
        return random.choice(keys)
    return api_key or None


def extract_json(text: str) -> dict[str, Any]:
    """Pull the first JSON object out of a model response."""
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _OBJECT_RE.search(cleaned)
        if not match:
            raise ValueError("No JSON object found in model response")
        data = json.loads(match.group(0))

    if isinstance(data, list) and data and isinstance(data[0], dict):
        # Some prompts tempt the model into returning several candidates
        data = data[0]
    if not isinstance(data, dict):
        raise ValueError("Model response is not a JSON object")
    return data


class GeminiReasoningService:
    """ReasoningService implementation on top of Gemini."""

    def __init__(
        self,
        api_key: str | None = None,
        api_keys: str | list[str] | None = None,
        model_name: str = "gemini-2.5-flash",
        temperature: float = 0.3,
    ):
        self.api_key = pick_api_key(api_key, api_keys)
        self.model_name = model_name
        self.temperature = temperature
        self._client = None

        if not self.api_key:
            logger.warning("No Gemini API key - exercises will fall back to flashcards")

    @classmethod
    def from_settings(cls, settings: Any) -> GeminiReasoningService:
        return cls(
            api_key=settings.gemini_api_key,
            api_keys=settings.gemini_api_keys,
            model_name=settings.ai_model,
        )

    @property
    def is_available(self) -> bool:
        return self.api_key is not None

    def _get_client(self):
        if self._client is None:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(
                model_name=self.model_name,
                system_instruction=prompts.SYSTEM_PROMPT,
            )
        return self._client

    async def _generate(
        self,
        prompt: str,
        schema: type[ModelT],
        failure: Callable[[str], Exception],
        temperature: float | None = None,
    ) -> ModelT:
        """Run one prompt and validate the answer into `schema`."""
        if not self.is_available:
            raise failure("Gemini API key not configured")

        try:
            response = await self._get_client().generate_content_async(
                prompt,
                generation_config={
                    "temperature": self.temperature if temperature is None else temperature,
                    "top_p": 0.8,
                    "max_output_tokens": 2048,
                    "response_mime_type": "application/json",
                },
            )
            text = response.text
        except Exception as e:  # SDK surfaces transport, quota and safety errors alike
            logger.error(f"Gemini call for {schema.__name__} failed: {e}")
            raise failure(f"Reasoning service call failed: {e}") from e

        if not text or not text.strip():
            raise failure("Empty response from reasoning service")

        try:
            return schema.model_validate(extract_json(text))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Malformed {schema.__name__} payload: {e}")
            raise failure(f"Malformed {schema.__name__} payload") from e

    # =========================================================================
    # Content
    # =========================================================================

    async def get_word_details(
        self, word: str, category: WordCategory | None = None
    ) -> WordDetails:
        category_hint = (
            prompts.CATEGORY_HINT.format(category=WordCategory(category).value)
            if category
            else ""
        )
        prompt = prompts.WORD_DETAILS_PROMPT.format(word=word, category_hint=category_hint)
        return await self._generate(
            prompt,
            WordDetails,
            lambda msg: ContentGenerationFailure(msg),
        )

    async def generate_quiz_question(self, word: str, details: WordDetails) -> QuizQuestion:
        extra = []
        if details.noun_details:
            extra.append(f"- Article: {details.noun_details.article}")
            extra.append(f"- Plural: {details.noun_details.plural}")
        if details.verb_details:
            extra.append(f"- Perfect tense: {details.verb_details.perfect}")
        if details.preposition_details:
            extra.append(f"- Case: {details.preposition_details.case}")

        prompt = prompts.QUIZ_QUESTION_PROMPT.format(
            word=word,
            part_of_speech=details.part_of_speech.value,
            translation=details.translation,
            extra_details="\n".join(extra),
        )
        return await self._generate(
            prompt,
            QuizQuestion,
            lambda msg: ContentGenerationFailure(msg, archetype="multiple_choice"),
            temperature=0.7,
        )

    async def generate_cloze(
        self, word: str, details: WordDetails, example: ExampleSentence
    ) -> ClozeContent:
        prompt = prompts.CLOZE_PROMPT.format(
            word=word,
            part_of_speech=details.part_of_speech.value,
            german=example.german,
            russian=example.russian,
        )
        return await self._generate(
            prompt,
            ClozeContent,
            lambda msg: ContentGenerationFailure(msg, archetype="cloze_sentence"),
        )

    # =========================================================================
    # Grading
    # =========================================================================

    async def grade_article_answer(
        self, word: str, answer: str, expected_article: str
    ) -> Judgment:
        prompt = prompts.ARTICLE_GRADING_PROMPT.format(
            word=word, answer=answer, expected=expected_article
        )
        return await self._generate(prompt, Judgment, GradingFailure, temperature=0.1)

    async def grade_verb_form_answer(
        self, word: str, answer: str, expected_form: str
    ) -> Judgment:
        prompt = prompts.VERB_FORM_GRADING_PROMPT.format(
            word=word, answer=answer, expected=expected_form
        )
        return await self._generate(prompt, Judgment, GradingFailure, temperature=0.1)

    async def grade_cloze_answer(
        self, word: str, answer: str, sentence: str, expected: str
    ) -> Judgment:
        prompt = prompts.CLOZE_GRADING_PROMPT.format(
            word=word, answer=answer, sentence=sentence, expected=expected
        )
        return await self._generate(prompt, Judgment, GradingFailure, temperature=0.1)

    async def check_recall_answer(
        self,
        prompt_translation: str,
        word: str,
        category: WordCategory,
        article: str | None,
        answer: str,
    ) -> Judgment:
        expected = f"{article} {word}" if article else word
        article_line = (
            prompts.RECALL_ARTICLE_LINE.format(article=article, word=word) if article else ""
        )
        prompt = prompts.RECALL_GRADING_PROMPT.format(
            translation=prompt_translation,
            word=word,
            article_line=article_line,
            answer=answer,
            expected=expected,
        )
        judgment = await self._generate(prompt, Judgment, GradingFailure, temperature=0.1)
        # The expected answer is known locally; never trust the model's copy of it
        return judgment.model_copy(update={"correct_answer": expected})
