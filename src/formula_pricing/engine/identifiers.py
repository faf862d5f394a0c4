"""
Identifier generation for variable and option tokens.

Used at design time only: labels typed by a designer become the machine ids
that formulas reference.
"""
import re
from typing import Iterable

DEFAULT_MAX_LENGTH = 30

_WHITESPACE = re.compile(r'\s+')
_INVALID = re.compile(r'[^a-z0-9_]')


def slugify(label: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """
    Normalize a label into an identifier.

    Lowercases, turns whitespace runs into "_", drops anything outside
    [a-z0-9_] and truncates to max_length. May return "".
    """
    text = str(label or '').strip().lower()
    text = _WHITESPACE.sub('_', text)
    text = _INVALID.sub('', text)
    return text[:max_length]


def unique_id(base: str, existing: Iterable[str]) -> str:
    """Append _2, _3, ... to base until it does not collide with existing."""
    taken = set(existing)
    if base not in taken:
        return base
    counter = 2
    while f"{base}_{counter}" in taken:
        counter += 1
    return f"{base}_{counter}"


def generate_option_id(label: str, index: int, existing: Iterable[str] = (),
                       max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Derive a unique option id from its label (fallback: option_{index})."""
    return unique_id(slugify(label, max_length) or f"option_{index}", existing)


def generate_variable_id(name: str, index: int, existing: Iterable[str] = (),
                         max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Derive a unique variable id from its name (fallback: variable_{index})."""
    return unique_id(slugify(name, max_length) or f"variable_{index}", existing)


def generate_option_ids(labels: Iterable[str], max_length: int = DEFAULT_MAX_LENGTH) -> list[str]:
    """Derive ids for a whole option list, disambiguating collisions in order."""
    ids: list[str] = []
    for index, label in enumerate(labels):
        ids.append(generate_option_id(label, index, ids, max_length))
    return ids
