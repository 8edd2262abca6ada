"""Parameter codec shared by every builder.

Merges parameter maps, generates collision-resistant parameter keys, and
renders parameterized text with literal values for debugging.
"""

from __future__ import annotations

import json
import random
import re
from collections.abc import Mapping
from typing import Any, TypeAlias

from cypher_forge.core.config import settings

# A value stored in a property map. Zero-argument callables are raw
# expressions such as ``lambda: "datetime()"`` and are inlined verbatim.
PropertyValue: TypeAlias = Any
Properties: TypeAlias = dict[str, PropertyValue]

_PLACEHOLDER_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")


class ParameterKeyGenerator:
    """Source of random suffixes for parameter keys.

    A seeded generator always produces the same sequence, which keeps the
    compiled text reproducible in tests.
    """

    def __init__(self, seed: int | None = None, length: int | None = None) -> None:
        self._random = random.Random(seed)
        self._length = length or settings.key_suffix_length

    @property
    def length(self) -> int:
        return self._length

    def token(self) -> str:
        """Return a fresh lowercase hex token."""
        return f"{self._random.getrandbits(self._length * 4):0{self._length}x}"


_default_generator: ParameterKeyGenerator | None = None


def get_key_generator() -> ParameterKeyGenerator:
    """Return the process-wide key generator, creating it from settings on first use."""
    global _default_generator
    if _default_generator is None:
        _default_generator = ParameterKeyGenerator(seed=settings.key_seed, length=settings.key_suffix_length)
    return _default_generator


def is_raw_expression(value: PropertyValue) -> bool:
    """Check whether a property value is a raw expression (a zero-argument callable)."""
    return callable(value)


def randomize_key(base: str, generator: ParameterKeyGenerator | None = None) -> str:
    """Append a fresh random suffix to a parameter name.

    Args:
        base: Parameter name without the ``$`` prefix
        generator: Key generator to draw from (defaults to the process-wide one)

    Returns:
        ``<base>_<token>``
    """
    generator = generator or get_key_generator()
    return f"{base}_{generator.token()}"


def find_placeholders(text: str) -> list[str]:
    """Return the distinct ``$name`` placeholders of a statement, in order of appearance."""
    return list(dict.fromkeys(_PLACEHOLDER_RE.findall(text)))


def rename_placeholders(text: str, mapping: Mapping[str, str]) -> str:
    """Rewrite ``$old`` placeholders to ``$new`` according to ``mapping``."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return f"${mapping[name]}" if name in mapping else match.group(0)

    return _PLACEHOLDER_RE.sub(_replace, text)


def randomize_parameter_keys(
    statement: str,
    parameters: Mapping[str, PropertyValue] | None = None,
    generator: ParameterKeyGenerator | None = None,
) -> tuple[str, Properties]:
    """Give every placeholder of a statement, and its value, a collision-free key.

    Args:
        statement: Statement text containing ``$name`` placeholders
        parameters: Values keyed by placeholder name
        generator: Key generator to draw from

    Returns:
        Tuple of (rewritten statement, re-keyed parameters)

    Example:
        >>> randomize_parameter_keys("n.age > $age", {"age": 25})
        ("n.age > $age_3f9c0b1d2e4a", {"age_3f9c0b1d2e4a": 25})
    """
    parameters = parameters or {}
    names = list(dict.fromkeys([*find_placeholders(statement), *parameters.keys()]))
    mapping = {name: randomize_key(name, generator) for name in names}

    new_statement = rename_placeholders(statement, mapping)
    new_parameters = {mapping[key]: value for key, value in parameters.items()}
    return new_statement, new_parameters


def merge_properties(target: Properties, source: Mapping[str, PropertyValue] | None) -> Properties:
    """Shallow-merge ``source`` into ``target`` in place; later keys win.

    Returns:
        The updated ``target`` for convenience
    """
    if source:
        for key, value in source.items():
            target[key] = value
    return target


def encode_value(value: PropertyValue) -> str:
    """Encode a property value as a query literal.

    Raw expressions are called and inlined as-is; everything else is JSON.
    """
    if is_raw_expression(value):
        return str(value())
    return json.dumps(value, ensure_ascii=False)


def replace_parameters(text: str, parameters: Mapping[str, PropertyValue]) -> str:
    """Substitute every ``$key`` in ``text`` with the literal form of its value.

    For debugging only: the output must never be executed in place of the
    parameterized form. Placeholders without a value are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return encode_value(parameters[name]) if name in parameters else match.group(0)

    # One pass over the original text: substituted literals are never rescanned
    return _PLACEHOLDER_RE.sub(_replace, text)


def inline_raw_expressions(text: str, parameters: Mapping[str, PropertyValue]) -> tuple[str, Properties]:
    """Move raw expressions out of the parameter map and into the text.

    The returned parameters only hold values a driver can bind.
    """
    raw = {key: value for key, value in parameters.items() if is_raw_expression(value)}
    bound = {key: value for key, value in parameters.items() if key not in raw}
    return replace_parameters(text, raw), bound


def missing_parameters(text: str, parameters: Mapping[str, PropertyValue]) -> list[str]:
    """Return the placeholders of ``text`` that have no entry in ``parameters``."""
    return [name for name in find_placeholders(text) if name not in parameters]


