"""
LLM Prompts for Vocabulary Exercises.

One prompt per reasoning-service operation:
- Word details (translation, grammar, examples)
- Multiple-choice question
- Cloze sentence
- Article / verb form / cloze grading
- Free recall grading (synonyms allowed)

Each prompt asks for a single JSON object whose keys match the pydantic
schemas in `wortschatz.reasoning.schemas`. Learner-facing text is Russian,
target language is German.
"""
from __future__ import annotations

# =============================================================================
# System Prompt (Applied to All Calls)
# =============================================================================

SYSTEM_PROMPT = """You are a German language teacher working with a Russian-speaking student.
You produce exercise content and grade answers.

RULES:
1. Respond with ONE JSON object and nothing else. No markdown, no comments.
2. Use exactly the keys requested. Use null for unknown optional values.
3. Explanations and hints are written in Russian.
4. German text uses correct capitalisation and umlauts.
"""

# =============================================================================
# Word Details
# =============================================================================

WORD_DETAILS_PROMPT = """Describe the German word or phrase "{word}".
{category_hint}

Return JSON with keys:
- "translation": primary Russian translation
- "alternative_translations": list of other Russian translations (may be empty)
- "part_of_speech": one of "noun", "verb", "adjective", "adverb", "preposition", "conjunction", "other"
- "noun_details": {{"article": "der"|"die"|"das", "plural": "..."}} for nouns, else null
- "verb_details": {{"present_tense": "ich ..., du ..., er/sie/es ..., wir ..., ihr ..., sie/Sie ...",
   "perfect": "ist gegangen", "verb_government": "warten auf + Akkusativ (ждать кого-то)" or null,
   "is_reflexive": true|false}} for verbs, else null
- "adjective_details": {{"comparative": "...", "superlative": "am ...", "antonym": "..." or null}} for adjectives, else null
- "preposition_details": {{"case": "Akkusativ"|"Dativ"|"Genitiv"|"Wechselpräposition",
   "dual_case_explanation": "..." or null, "common_contractions": "in + dem = im, ..." or null}} for prepositions, else null
- "conjunction_details": {{"verb_position": "secondPosition"|"endOfSentence"}} for conjunctions, else null
- "examples": three distinct sentences, each {{"german": "...", "russian": "..."}}
"""

CATEGORY_HINT = 'The word is expected to be a {category}; use this to resolve ambiguity.'

# =============================================================================
# Content Generation
# =============================================================================

QUIZ_QUESTION_PROMPT = """Create ONE multiple-choice question about the German word "{word}".

WORD DETAILS:
- Part of speech: {part_of_speech}
- Translation: {translation}
{extra_details}

Choose the question type from what the details allow:
- "translation": ask for the Russian translation
- "article": (noun) ask for the article
- "plural": (noun with a non-obvious plural) ask for the plural
- "perfect_tense": (verb) ask for the perfect tense
- "case": (preposition) ask for the case it governs

Write the question in Russian, e.g. "Какой перевод у слова '{word}'?".
Provide exactly 4 shuffled options: the correct answer plus 3 plausible distractors.

Return JSON with keys: "question", "question_type", "options", "correct_answer".
"correct_answer" must be copied exactly from "options".
"""

CLOZE_PROMPT = """Create a fill-in-the-blank exercise for the German word "{word}" ({part_of_speech}).

EXAMPLE SENTENCE:
- German: "{german}"
- Russian: "{russian}"

Replace the word in the German sentence with "______". If the sentence contains an
inflected form (conjugated verb, declined adjective, plural noun), blank out that exact form.

EXAMPLE:
word "gehen", sentence "Wir sind ins Kino gegangen." ->
{{"sentence_with_blank": "Wir sind ins Kino ______.", "correct_answer": "gegangen", "translation": "Мы пошли в кино."}}

Return JSON with keys: "sentence_with_blank", "correct_answer", "translation".
"""

# =============================================================================
# Grading
# =============================================================================

ARTICLE_GRADING_PROMPT = """The student chose the article "{answer}" for the noun "{word}".
The correct article is "{expected}".

Return JSON with keys:
- "is_correct": true only if the chosen article is correct
- "explanation": short explanation in Russian of the noun's gender
- "hint": if incorrect, a short mnemonic in Russian that helps remember the gender
  (endings like -ung, -heit, -keit, -chen, -lein, semantic groups); otherwise null
- "correct_answer": "{expected} {word}"
"""

VERB_FORM_GRADING_PROMPT = """The student was asked for the perfect tense (Perfekt) of the German verb "{word}".
Expected form: "{expected}". Student's answer: "{answer}".

Accept the answer if it is the same form, ignoring case and surrounding whitespace,
or an equally correct variant (for example both "hat" and "ist" are accepted when the verb allows both).

Return JSON with keys:
- "is_correct": true|false
- "explanation": short explanation in Russian (auxiliary haben/sein, participle formation)
- "hint": a short hint in Russian if incorrect, else null
- "correct_answer": "{expected}"
"""

CLOZE_GRADING_PROMPT = """The student filled the blank in the sentence "{sentence}" with "{answer}".
The target word is "{word}", the expected form is "{expected}".

Accept the answer if it is grammatically and semantically correct in this sentence,
even when it differs from the expected form.

Return JSON with keys:
- "is_correct": true|false
- "is_synonym": true if correct but different from the expected form, else false
- "explanation": short explanation in Russian
- "correct_answer": "{expected}"
"""

RECALL_GRADING_PROMPT = """The student was asked to translate the Russian word "{translation}" into German.
- Expected German word: "{word}"
{article_line}
- Student's answer: "{answer}"

EVALUATION:
1. Exact (case-insensitive) match with the expected answer -> is_correct true, is_synonym false.
   Nouns MUST include the article: "Haus" is wrong when "das Haus" is expected.
2. Otherwise, if the answer is a valid German synonym (e.g. "darum" for "deshalb")
   -> is_correct true, is_synonym true.
3. Otherwise -> is_correct false, is_synonym false.

Return JSON with keys: "is_correct", "is_synonym", "explanation" (Russian), "correct_answer" ("{expected}").
"""

RECALL_ARTICLE_LINE = '- It is a noun, so the expected answer is article + noun: "{article} {word}"'
