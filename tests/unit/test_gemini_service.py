"""
Unit tests for the Gemini reasoning service.

The Gemini model is replaced by a stub; no network calls are made.
"""

import json
import random
from types import SimpleNamespace

import pytest

from wortschatz.core.errors import ContentGenerationFailure, GradingFailure
from wortschatz.core.models import WordCategory
from wortschatz.reasoning.gemini import GeminiReasoningService, extract_json, pick_api_key
from wortschatz.reasoning.schemas import BLANK_MARKER
from wortschatz.reasoning.service import ReasoningService


class StubModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []
        self.configs = []

    async def generate_content_async(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        self.configs.append(generation_config)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def stubbed_service(text=None, error=None):
    service = GeminiReasoningService(api_key="test-key")
    service._client = StubModel(text, error)
    return service


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"is_correct": true}') == {"is_correct": True}

    def test_code_fence(self):
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose(self):
        assert extract_json('Here you go: {"a": {"b": 2}} Hope it helps!') == {"a": {"b": 2}}

    def test_list_takes_first_object(self):
        assert extract_json('[{"a": 1}, {"a": 2}]') == {"a": 1}

    @pytest.mark.parametrize("text", ["no json here", "[1, 2]", "42"])
    def test_rejects_non_objects(self, text):
        with pytest.raises(ValueError):
            extract_json(text)


class TestApiKeys:
    def test_single_key(self):
        assert pick_api_key("abc") == "abc"

    def test_key_list_wins(self):
        random.seed(3)
        assert pick_api_key("abc", "k1, k2 ,k3") in {"k1", "k2", "k3"}

    def test_empty_entries_ignored(self):
        assert pick_api_key(None, " , k1,") == "k1"

    def test_no_key(self):
        assert pick_api_key(None, None) is None
        assert pick_api_key("", "") is None


class TestAvailability:
    def test_implements_port(self):
        assert isinstance(GeminiReasoningService(api_key="k"), ReasoningService)

    @pytest.mark.asyncio
    async def test_without_key_content_fails(self):
        service = GeminiReasoningService()
        assert not service.is_available
        with pytest.raises(ContentGenerationFailure):
            await service.get_word_details("Haus")

    @pytest.mark.asyncio
    async def test_without_key_grading_fails(self):
        with pytest.raises(GradingFailure):
            await GeminiReasoningService().grade_article_answer("Haus", "das", "das")


class TestContent:
    @pytest.mark.asyncio
    async def test_word_details(self, haus_details):
        service = stubbed_service(haus_details.model_dump_json())
        details = await service.get_word_details("Haus", WordCategory.NOUN)

        assert details == haus_details
        prompt = service._client.prompts[0]
        assert "Haus" in prompt
        assert "noun" in prompt
        assert service._client.configs[0]["response_mime_type"] == "application/json"

    @pytest.mark.asyncio
    async def test_quiz_question(self, haus_details):
        payload = {
            "question": "Was bedeutet 'Haus'?",
            "question_type": "translation",
            "options": ["дом", "кошка", "дерево", "вода"],
            "correct_answer": "дом",
        }
        service = stubbed_service(json.dumps(payload, ensure_ascii=False))
        question = await service.generate_quiz_question("Haus", haus_details)

        assert question.correct_answer == "дом"
        assert "Article: das" in service._client.prompts[0]

    @pytest.mark.asyncio
    async def test_quiz_answer_not_among_options(self, haus_details):
        payload = {
            "question": "?",
            "question_type": "translation",
            "options": ["кошка", "дерево"],
            "correct_answer": "дом",
        }
        service = stubbed_service(json.dumps(payload))
        with pytest.raises(ContentGenerationFailure):
            await service.generate_quiz_question("Haus", haus_details)

    @pytest.mark.asyncio
    async def test_cloze_without_blank_rejected(self, gehen_details):
        payload = {"sentence_with_blank": "Ich gehe nach Hause.", "correct_answer": "gehe"}
        service = stubbed_service(json.dumps(payload))
        with pytest.raises(ContentGenerationFailure) as exc_info:
            await service.generate_cloze("gehen", gehen_details, gehen_details.examples[0])
        assert exc_info.value.archetype == "cloze_sentence"

    @pytest.mark.asyncio
    async def test_cloze(self, gehen_details):
        payload = {
            "sentence_with_blank": f"Ich {BLANK_MARKER} jeden Tag zur Arbeit.",
            "correct_answer": "gehe",
            "translation": "Я каждый день хожу на работу.",
        }
        service = stubbed_service(f"```json\n{json.dumps(payload)}\n```")
        content = await service.generate_cloze("gehen", gehen_details, gehen_details.examples[0])
        assert content.correct_answer == "gehe"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "not json", '{"translation": 1}'])
    async def test_bad_responses_become_failures(self, text):
        service = stubbed_service(text)
        with pytest.raises(ContentGenerationFailure):
            await service.get_word_details("Haus")

    @pytest.mark.asyncio
    async def test_sdk_errors_become_failures(self):
        service = stubbed_service(error=RuntimeError("quota exceeded"))
        with pytest.raises(ContentGenerationFailure) as exc_info:
            await service.get_word_details("Haus")
        assert "quota exceeded" in str(exc_info.value)


class TestGrading:
    @pytest.mark.asyncio
    async def test_article_judgment(self):
        service = stubbed_service('{"is_correct": false, "explanation": "Es heißt das Haus.", "hint": "Neutrum"}')
        judgment = await service.grade_article_answer("Haus", "der", "das")

        assert not judgment.is_correct
        assert judgment.hint == "Neutrum"
        assert service._client.configs[0]["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_malformed_judgment_is_grading_failure(self):
        service = stubbed_service('{"explanation": "missing verdict"}')
        with pytest.raises(GradingFailure):
            await service.grade_verb_form_answer("gehen", "hat gegangen", "ist gegangen")

    @pytest.mark.asyncio
    async def test_sdk_error_is_grading_failure(self):
        service = stubbed_service(error=TimeoutError("deadline"))
        with pytest.raises(GradingFailure):
            await service.grade_cloze_answer("gehen", "laufe", "Ich ______", "gehe")

    @pytest.mark.asyncio
    async def test_recall_uses_local_expected_answer(self):
        service = stubbed_service(
            '{"is_correct": true, "is_synonym": true, "explanation": "ok", "correct_answer": "die Haus"}'
        )
        judgment = await service.check_recall_answer("дом", "Haus", WordCategory.NOUN, "das", "das Gebäude")

        assert judgment.is_synonym
        assert judgment.correct_answer == "das Haus"
        assert "das Haus" in service._client.prompts[0]
