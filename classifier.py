# classifier.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from items import Item

# categories that start out disabled when no saved policy exists
EXCLUDED_BY_DEFAULT = ("Adult Beverage", "Tobacco")

ATTRIBUTE_MODE = "attribute"
KEYWORD_MODE = "keyword"


def normalize(text: Optional[str]) -> str:
    if not text:
        return ""
    return " ".join(str(text).split()).lower()


class Classifier(Protocol):
    def eligible(self, item: Item, policy: Mapping[str, bool]) -> bool:
        ...


def _normalized_policy(policy: Mapping[str, bool]) -> Dict[str, bool]:
    # two spellings of one category collapse; enabled wins
    merged: Dict[str, bool] = {}
    for key, enabled in policy.items():
        norm = normalize(key)
        if not norm:
            continue
        merged[norm] = merged.get(norm, False) or enabled is True
    return merged


class AttributeClassifier:
    """Classifies by the explicit category tags carried on each card.

    1. no enabled category in the policy -> everything passes
    2. any tag equal to an enabled category -> eligible
    3. no tag matches any policy key -> eligible (unknown never blocks)
    4. otherwise every known tag is disabled -> not eligible
    """

    def eligible(self, item: Item, policy: Mapping[str, bool]) -> bool:
        normalized = _normalized_policy(policy)
        if not any(normalized.values()):
            return True

        labels = [normalize(label) for label in item.categories]
        labels = [label for label in labels if label]

        # whole labels only: "beverage" must not stand in for "adult beverage"
        known = False
        for label in labels:
            if label not in normalized:
                continue
            if normalized[label]:
                return True
            known = True

        return not known


class KeywordClassifier:
    """Classifies by keywords found in the card's free text.

    Disabled categories are scanned first and block; then enabled categories
    allow; no match at all allows.
    """

    def __init__(self, keywords: Optional[Mapping[str, Sequence[str]]] = None) -> None:
        self._keywords: Dict[str, List[str]] = {}
        for category, words in (keywords or {}).items():
            cleaned = [normalize(word) for word in words]
            self._keywords[normalize(category)] = [word for word in cleaned if word]

    def keywords_for(self, category: str) -> List[str]:
        norm = normalize(category)
        if not norm:
            return []
        return self._keywords.get(norm) or [norm]

    def _matches(self, text: str, category: str) -> bool:
        return any(word in text for word in self.keywords_for(category))

    def eligible(self, item: Item, policy: Mapping[str, bool]) -> bool:
        text = normalize(item.description())
        if not text:
            return True

        for category, enabled in policy.items():
            if enabled is not True and self._matches(text, category):
                return False

        for category, enabled in policy.items():
            if enabled is True and self._matches(text, category):
                return True

        return True


def build_classifier(
    mode: str,
    keywords: Optional[Mapping[str, Sequence[str]]] = None,
) -> Classifier:
    selected = normalize(mode)
    if selected == ATTRIBUTE_MODE:
        return AttributeClassifier()
    if selected == KEYWORD_MODE:
        return KeywordClassifier(keywords)
    raise ValueError(f"Unknown classification mode {mode!r} (expected 'attribute' or 'keyword').")


def load_keywords(path: str | Path) -> Dict[str, List[str]]:
    """Read a JSON object mapping category name -> list of keywords."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Keyword file {path} must contain a JSON object.")

    keywords: Dict[str, List[str]] = {}
    for category, words in raw.items():
        if isinstance(words, str):
            words = [words]
        if not isinstance(words, list):
            raise ValueError(f"Keywords for {category!r} must be a string or a list of strings.")
        keywords[str(category)] = [str(word) for word in words]
    return keywords


def default_policy(categories: Iterable[str]) -> Dict[str, bool]:
    return {category: category not in EXCLUDED_BY_DEFAULT for category in categories}


def sort_categories(categories: Iterable[str]) -> List[str]:
    """Enabled-by-default categories alphabetically, excluded ones last."""
    return sorted(
        categories,
        key=lambda category: (category in EXCLUDED_BY_DEFAULT, category.casefold()),
    )
