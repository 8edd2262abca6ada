"""Alias extraction from raw query fragments.

Selective clauses accept raw pattern text next to structured builders, and
dependent clauses accept free-form statements. Both need to know which aliases
the text binds or references without parsing the full query language.
"""

import re

# Single- or double-quoted literals, with backslash escapes
_STRING_LITERAL_RE = re.compile(r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"")
_PARAMETER_RE = re.compile(r"\$[A-Za-z_][A-Za-z0-9_]*")

# `(alias` or `[alias` inside a pattern
_PATTERN_ALIAS_RE = re.compile(r"[(\[]\s*([A-Za-z_][A-Za-z0-9_]*)")
# `p = ...` at the start of a pattern
_PATH_BINDING_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=")

# Any identifier; a trailing `.prop` chain is consumed with it and a following
# `(` marks a function call. Identifiers after `.` or `:` are properties or labels.
_IDENTIFIER_RE = re.compile(
    r"(?<![A-Za-z0-9_.:`])([A-Za-z_][A-Za-z0-9_]*)"
    r"(?:\s*\.\s*[A-Za-z_][A-Za-z0-9_]*)*"
    r"(\s*\()?"
)
# Variables bound inside the expression by list comprehensions, predicate
# functions, reduce() and `AS`
_LOCAL_VARIABLE_RES = (
    re.compile(r"\[\s*([A-Za-z_][A-Za-z0-9_]*)\s+IN\b", re.IGNORECASE),
    re.compile(r"\b(?:all|any|none|single)\s*\(\s*([A-Za-z_][A-Za-z0-9_]*)\s+IN\b", re.IGNORECASE),
    re.compile(
        r"\breduce\s*\(\s*([A-Za-z_][A-Za-z0-9_]*)\s*=[^,]*,\s*([A-Za-z_][A-Za-z0-9_]*)\s+IN\b",
        re.IGNORECASE,
    ),
    re.compile(r"\bAS\s+([A-Za-z_][A-Za-z0-9_]*)", re.IGNORECASE),
)
# `{key: ...}` or `, key: ...` inside a map literal
_MAP_KEY_PREFIX_RE = re.compile(r"[{,]\s*$")
_MAP_KEY_SUFFIX_RE = re.compile(r"\s*:")

_KEYWORDS = frozenset(
    "AND OR XOR NOT IS NULL TRUE FALSE IN STARTS ENDS WITH CONTAINS DISTINCT AS ASC DESC"
    " ASCENDING DESCENDING CASE WHEN THEN ELSE END WHERE EXISTS COUNT COLLECT ALL ANY NONE SINGLE".split()
)


def _strip_literals(text: str) -> str:
    text = _STRING_LITERAL_RE.sub(" ", text)
    return _PARAMETER_RE.sub(" ", text)


def _local_variables(text: str) -> set[str]:
    names: set[str] = set()
    for pattern in _LOCAL_VARIABLE_RES:
        for found in pattern.findall(text):
            names.update((found,) if isinstance(found, str) else found)
    return names


def _is_map_key(text: str, match: re.Match[str]) -> bool:
    return bool(
        _MAP_KEY_PREFIX_RE.search(text, 0, match.start())
        and _MAP_KEY_SUFFIX_RE.match(text, match.end())
    )


def extract_aliases_from_path(text: str) -> list[str]:
    """Extract the aliases a raw path pattern binds.

    Args:
        text: Pattern text such as ``p = (n:Person)-[r:KNOWS]->(m)``

    Returns:
        Aliases in first-seen order, without duplicates

    Example:
        >>> extract_aliases_from_path("p = (n:Person)-[r:KNOWS]->(:Person)")
        ['p', 'n', 'r']
    """
    stripped = _strip_literals(text)
    aliases: list[str] = []

    binding = _PATH_BINDING_RE.match(stripped)
    if binding:
        aliases.append(binding.group(1))

    aliases.extend(_PATTERN_ALIAS_RE.findall(stripped))
    return list(dict.fromkeys(aliases))


def extract_aliases_from_statement(text: str) -> list[str]:
    """Extract the aliases a statement references.

    Every identifier outside quoted strings and ``$parameters`` counts, except
    keywords, function names, property keys, labels, map keys and variables
    the statement binds itself (``x`` in ``any(x IN n.tags WHERE ...)``).

    Args:
        text: Statement text such as ``n.age > $age AND m:Person``

    Returns:
        Aliases in first-seen order, without duplicates

    Example:
        >>> extract_aliases_from_statement("count(n) > 1 AND m.x IS NULL")
        ['n', 'm']
    """
    stripped = _strip_literals(text)
    local = _local_variables(stripped)

    aliases: list[str] = []
    for match in _IDENTIFIER_RE.finditer(stripped):
        name, call = match.group(1), match.group(2)
        if call or name.upper() in _KEYWORDS or name in local:
            continue
        if _is_map_key(stripped, match):
            continue
        aliases.append(name)
    return list(dict.fromkeys(aliases))
