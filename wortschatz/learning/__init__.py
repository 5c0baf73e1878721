"""
Learning: adaptive choice of what to practise next.

- exercise_selector: weighted, category-aware archetype selection
"""

from wortschatz.learning.exercise_selector import ExerciseSelector, SelectionWeights

__all__ = [
    "ExerciseSelector",
    "SelectionWeights",
]
