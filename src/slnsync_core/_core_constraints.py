from __future__ import annotations

from collections.abc import Iterable

from ._core_base import ConfigurationError

SYMBOL_NAME_MAX_LENGTH = 247
NEGATION_MARKER = "!"
ALTERNATIVE_SEPARATOR = "||"


def is_valid_symbol_name(name: str) -> bool:
    if not name:
        return False
    if len(name) > SYMBOL_NAME_MAX_LENGTH or " " in name:
        return False
    first = name[0]
    return first.isalpha() or first == "_"


def split_constraint(expression: str) -> list[tuple[str, bool]]:
    """Split one constraint into ``(symbol, negated)`` alternatives.

    ``"FOO"`` requires FOO, ``"!FOO"`` requires FOO to be absent and
    ``"FOO || !BAR"`` is satisfied when either side is.
    """
    alternatives: list[tuple[str, bool]] = []
    for raw in expression.split(ALTERNATIVE_SEPARATOR):
        token = raw.strip()
        negated = token.startswith(NEGATION_MARKER)
        if negated:
            token = token[len(NEGATION_MARKER):].strip()
        alternatives.append((token, negated))
    return alternatives


def validate_define_constraints(constraints: Iterable[str], label: str) -> tuple[str, ...]:
    validated: list[str] = []
    for index, expression in enumerate(constraints):
        if not isinstance(expression, str) or not expression.strip():
            raise ConfigurationError(f"{label}: define constraint [{index}] must be a non-empty string")
        for symbol, _ in split_constraint(expression):
            if not is_valid_symbol_name(symbol):
                raise ConfigurationError(
                    f"{label}: define constraint '{expression}' contains invalid symbol '{symbol}'"
                )
        validated.append(expression.strip())
    return tuple(validated)


def is_constraint_satisfied(expression: str, defines: frozenset[str]) -> bool:
    for symbol, negated in split_constraint(expression):
        present = symbol in defines
        if present != negated:
            return True
    return False


def are_define_constraints_satisfied(defines: Iterable[str], constraints: Iterable[str]) -> bool:
    active = frozenset(defines)
    return all(is_constraint_satisfied(expression, active) for expression in constraints)
