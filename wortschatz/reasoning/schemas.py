"""
Structured payloads exchanged with the reasoning service.

Every response from the language model is validated into one of these
models before the rest of the package sees it.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from wortschatz.core.models import WordCategory

BLANK_MARKER = "______"

Article = Literal["der", "die", "das"]
GrammaticalCase = Literal["Nominativ", "Akkusativ", "Dativ", "Genitiv"]


class ExampleSentence(BaseModel):
    german: str = Field(description="The example sentence in German.")
    russian: str = Field(description="The Russian translation of the sentence.")


class NounDetails(BaseModel):
    article: Article = Field(description="The noun's article.")
    plural: str = Field(default="", description="The plural form of the noun.")


class VerbDetails(BaseModel):
    present_tense: str = Field(default="", description="Present tense conjugation for all persons.")
    perfect: str = Field(description='The perfect tense form, e.g. "ist gegangen".')
    verb_government: str | None = Field(default=None, description="Case or preposition the verb governs.")
    is_reflexive: bool | None = None


class AdjectiveDetails(BaseModel):
    comparative: str
    superlative: str
    antonym: str | None = None


class PrepositionDetails(BaseModel):
    case: Literal["Akkusativ", "Dativ", "Genitiv", "Wechselpräposition"]
    dual_case_explanation: str | None = None
    common_contractions: str | None = None


class ConjunctionDetails(BaseModel):
    verb_position: Literal["secondPosition", "endOfSentence"]


class WordDetails(BaseModel):
    """Linguistic detail payload stored next to a review record."""

    translation: str = Field(description="The primary Russian translation.")
    alternative_translations: list[str] = Field(default_factory=list)
    part_of_speech: WordCategory
    noun_details: NounDetails | None = None
    verb_details: VerbDetails | None = None
    adjective_details: AdjectiveDetails | None = None
    preposition_details: PrepositionDetails | None = None
    conjunction_details: ConjunctionDetails | None = None
    examples: list[ExampleSentence] = Field(default_factory=list)

    @property
    def article(self) -> str | None:
        return self.noun_details.article if self.noun_details else None


class QuizQuestion(BaseModel):
    """Multiple-choice question with distractors."""

    question: str
    question_type: Literal["translation", "article", "plural", "perfect_tense", "case"]
    options: list[str]
    correct_answer: str

    @field_validator("options")
    @classmethod
    def _at_least_two_options(cls, options: list[str]) -> list[str]:
        options = [o.strip() for o in options if o and o.strip()]
        if len(options) < 2:
            raise ValueError("a multiple-choice question needs at least two options")
        return options

    @model_validator(mode="after")
    def _answer_among_options(self) -> QuizQuestion:
        self.correct_answer = self.correct_answer.strip()
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")
        return self


class ClozeContent(BaseModel):
    """Sentence with the target word blanked out."""

    sentence_with_blank: str
    correct_answer: str
    translation: str = ""

    @field_validator("sentence_with_blank")
    @classmethod
    def _has_blank(cls, sentence: str) -> str:
        if BLANK_MARKER not in sentence:
            raise ValueError(f"sentence must contain the blank marker {BLANK_MARKER!r}")
        return sentence

    @field_validator("correct_answer")
    @classmethod
    def _not_empty(cls, answer: str) -> str:
        if not answer.strip():
            raise ValueError("correct_answer must not be empty")
        return answer.strip()


class Judgment(BaseModel):
    """Grading verdict from the reasoning service."""

    is_correct: bool
    is_synonym: bool = False
    explanation: str = ""
    hint: str | None = None
    correct_answer: str | None = None
