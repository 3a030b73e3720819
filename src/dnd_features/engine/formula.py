"""Formula evaluation for feature resource limits.

Feature definitions describe their caps with small formulas that are
evaluated against a character snapshot:

    - integer literal: ``3``, ``"3"``, ``"fixed:3"``
    - proficiency bonus: ``"prof"`` or ``"proficiency_bonus"``
    - ability modifier: ``"cha"``, ``"charisma"``, ``"charisma_modifier"``
    - class level: ``"level"``
    - level-indexed list: ``[0, 2, 2, 2, 3, ...]`` or ``["d6", "d6", "d8", ...]``
    - level breakpoints: ``{3: 2, 10: 3, 17: 4}``

The result is always an integer >= 0. A formula that cannot be evaluated
yields 0 and a log line; it never raises, so one bad definition cannot
break a whole character view. Composite expressions such as
``"1 + charisma_modifier"`` are not supported and evaluate to 0.
"""

from __future__ import annotations

import re
from typing import Any

from dnd_features.core.logging import get_logger
from dnd_features.models.character import CharacterSnapshot
from dnd_features.models.enums import Ability


logger = get_logger(__name__)

_INTEGER = re.compile(r"^[+-]?\d+$")
_FIXED = re.compile(r"^fixed:\s*([+-]?\d+)$")
_DIE = re.compile(r"^d(\d+)$")
_PROFICIENCY_TOKENS = frozenset({"prof", "proficiency", "proficiency_bonus"})
_MODIFIER_SUFFIX = "_modifier"


def relevant_level(character: CharacterSnapshot, class_name: str | None = None) -> int:
    """Level that formulas use for a character.

    Args:
        character: Character being evaluated.
        class_name: Owning class of the feature, if known.

    Returns:
        The class level when the character has that class, otherwise the
        total character level.
    """
    if class_name and character.has_class(class_name):
        return character.class_level(class_name)
    return character.total_level


def die_for_level(progression: list[str] | None, level: int) -> str | None:
    """Get the display die for a level from a die progression.

    Example:
        >>> die_for_level(["d6", "d6", "d6", "d6", "d8"], 12)
        'd8'
    """
    if not progression:
        return None
    return progression[min(max(level, 1) - 1, len(progression) - 1)]


class FormulaEvaluator:
    """Evaluates feature formulas against a character snapshot.

    Example:
        >>> evaluator = FormulaEvaluator()
        >>> evaluator.evaluate("prof", character)
        3
    """

    def evaluate(
        self,
        formula: Any,
        character: CharacterSnapshot,
        class_name: str | None = None,
    ) -> int:
        """Evaluate a formula to a non-negative integer.

        Args:
            formula: Formula as stored on a feature definition.
            character: Character supplying level and ability scores.
            class_name: Owning class; selects the per-class level.

        Returns:
            Evaluated value, floored at 0. Unsupported formulas give 0.
        """
        level = relevant_level(character, class_name)
        try:
            value = self._evaluate(formula, character, level)
        except (TypeError, ValueError, AttributeError) as exc:
            logger.warning(
                "Formula evaluation failed",
                formula=repr(formula),
                error=str(exc),
            )
            return 0

        if value is None:
            logger.debug("Unsupported formula evaluated to 0", formula=repr(formula))
            return 0
        return max(0, value)

    def _evaluate(self, formula: Any, character: CharacterSnapshot, level: int) -> int | None:
        # bool is an int subclass and is never a valid formula
        if isinstance(formula, bool):
            return None
        if isinstance(formula, int):
            return formula
        if isinstance(formula, str):
            return self._evaluate_token(formula, character, level)
        if isinstance(formula, (list, tuple)):
            return self._evaluate_progression(formula, level)
        if isinstance(formula, dict):
            return self._evaluate_breakpoints(formula, level)
        return None

    def _evaluate_token(self, formula: str, character: CharacterSnapshot, level: int) -> int | None:
        token = formula.strip().lower()
        if not token:
            return None

        if _INTEGER.match(token):
            return int(token)

        fixed = _FIXED.match(token)
        if fixed:
            return int(fixed.group(1))

        if token in _PROFICIENCY_TOKENS:
            return character.proficiency_bonus_for(level)

        if token == "level":
            return level

        if token.endswith(_MODIFIER_SUFFIX):
            token = token[: -len(_MODIFIER_SUFFIX)]
        ability = Ability.from_code(token)
        if ability is not None:
            return max(0, character.ability_modifier(ability))

        return None

    def _evaluate_progression(self, progression: list[Any] | tuple[Any, ...], level: int) -> int | None:
        if not progression:
            return None
        element = progression[min(max(level, 1) - 1, len(progression) - 1)]
        return self._element_value(element)

    def _evaluate_breakpoints(self, table: dict[Any, Any], level: int) -> int | None:
        best_threshold: int | None = None
        best_value: int | None = None
        for raw_threshold, raw_value in table.items():
            threshold = self._element_value(raw_threshold)
            if threshold is None:
                return None
            if threshold <= level and (best_threshold is None or threshold > best_threshold):
                best_threshold = threshold
                best_value = self._element_value(raw_value)
        if best_threshold is None:
            return 0
        return best_value

    @staticmethod
    def _element_value(element: Any) -> int | None:
        """Integer value of a table element; dice count as their face value."""
        if isinstance(element, bool):
            return None
        if isinstance(element, int):
            return element
        if isinstance(element, str):
            token = element.strip().lower()
            if _INTEGER.match(token):
                return int(token)
            die = _DIE.match(token)
            if die:
                return int(die.group(1))
        return None


_default_evaluator = FormulaEvaluator()


def evaluate(formula: Any, character: CharacterSnapshot, class_name: str | None = None) -> int:
    """Evaluate a formula with the shared evaluator.

    See FormulaEvaluator.evaluate.
    """
    return _default_evaluator.evaluate(formula, character, class_name)


__all__ = [
    "FormulaEvaluator",
    "evaluate",
    "relevant_level",
    "die_for_level",
]
