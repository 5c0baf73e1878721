"""
wortschatz: spaced-repetition vocabulary trainer for German.

Components:
- SchedulingEngine: SM-2 review scheduling
- ExerciseSelector: weighted choice of exercise archetype per word
- SessionController: review-session state machine
- ReasoningService: content generation and grading (Gemini)
- SqlWordStore: SQLite persistence
"""

__version__ = "0.1.0"
