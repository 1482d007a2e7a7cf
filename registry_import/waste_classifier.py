"""
This module maps free-text container descriptions to waste-type tags.
"""
from typing import FrozenSet, Iterable, Tuple

MIXED = "mixed"

# Every tag the route checklists know about, with its display name.
WASTE_OPTIONS = [
    ("bio-green", "Bio zielone 120L"),
    ("bio-green-240", "Bio zielone 240L"),
    ("bio-green-1100", "Bio zielone 1100L"),
    ("bio-kitchen", "Bio kuchenne 120L"),
    ("bio-kitchen-240", "Bio kuchenne 240L"),
    ("bio-kitchen-1100", "Bio kuchenne 1100L"),
    ("glass-clear", "Szkło bezbarwne"),
    ("glass-clear-1100", "Szkło bezbarwne 1100L"),
    ("glass-colored", "Szkło kolorowe"),
    ("glass-colored-1100", "Szkło kolorowe 1100L"),
    ("paper", "Papier"),
    ("paper-1100", "Papier 1100L"),
    ("plastic", "Plastik i metal"),
    ("plastic-1100", "Plastik i metal 1100L"),
    ("ash", "Popiół"),
    (MIXED, "Zmieszane 120L"),
    ("mixed-240", "Zmieszane 240L"),
    ("mixed-1100", "Zmieszane 1100L"),
]

WASTE_TAGS = frozenset(tag for tag, _ in WASTE_OPTIONS)

GLASS_KEYWORDS = ("szkło", "szklo")
CLEAR_GLASS_KEYWORD = "bezbarw"

# Ordered (keywords, tag) rules; any keyword match fires the rule.
CLASSIFICATION_RULES = [
    (("papier",), "paper"),
    (("plastik", "metal"), "plastic"),
    (("bio",), "bio-green"),
    (("popiół", "popiol"), "ash"),
    (("zmiesz",), MIXED),
]


def classify(description: str) -> FrozenSet[str]:
    """
    Returns the waste tags matching a container description.

    Several tags may match one description; an unknown description yields an
    empty set.
    """
    normalized = (description or "").lower()
    tags = set()

    for keywords, tag in CLASSIFICATION_RULES:
        if any(keyword in normalized for keyword in keywords):
            tags.add(tag)

    if any(keyword in normalized for keyword in GLASS_KEYWORDS):
        if CLEAR_GLASS_KEYWORD in normalized:
            tags.add("glass-clear")
        else:
            tags.add("glass-colored")

    return frozenset(tags)


def with_fallback(tags: Iterable[str]) -> Tuple[str, ...]:
    """Returns the tags in a stable order, or ('mixed',) when there are none."""
    wanted = set(tags)
    ordered = tuple(tag for tag, _ in WASTE_OPTIONS if tag in wanted)
    return ordered or (MIXED,)
