"""
Centralized tag normalization utilities.

Every path that turns text into tag names (upload form, post edit,
blacklist settings, search queries, auto-tagger output) goes through
these functions so one logical tag never splits into two catalog entries.
"""

import re
from typing import Iterable, List, Tuple

from core.errors import ValidationError

# Separators that mark a multi-word phrase in free-text model output
_PHRASE_SEPARATORS = re.compile(r'[,;\n]+')

# Anything that is not a word character or a colon is dropped from auto tags
_DISALLOWED_CHARS = re.compile(r'[^\w:]+', re.UNICODE)
_UNDERSCORE_RUNS = re.compile(r'_+')

EXCLUDE_PREFIX = '-'


def normalize_tag_name(name: str) -> str:
    """Trim and lowercase a tag name."""
    return (name or '').strip().lower()


def dedupe_preserving_order(names: Iterable[str]) -> List[str]:
    """Drop empty and repeated names, keeping the first occurrence."""
    seen = set()
    result = []
    for name in names:
        if name and name not in seen:
            seen.add(name)
            result.append(name)
    return result


def split_tag_string(tag_string: str) -> List[str]:
    """
    Split a space-separated tag string into normalized, unique names.

    Examples:
        "Cat  blue_eyes CAT" -> ['cat', 'blue_eyes']
    """
    if not tag_string:
        return []
    return dedupe_preserving_order(normalize_tag_name(t) for t in tag_string.split())


def parse_tag_input(tag_string: str, allow_empty: bool = False) -> List[str]:
    """
    Parse tags typed by a user for an upload or edit.

    Uploads need at least one tag; an edit may clear the list.

    Raises:
        ValidationError: If no tags were given (unless allow_empty) or a name
            starts with '-', which search reserves for exclusion.
    """
    names = split_tag_string(tag_string)
    if not names and not allow_empty:
        raise ValidationError("File and tags are required.")
    for name in names:
        if name.startswith(EXCLUDE_PREFIX):
            raise ValidationError(f"Tag names cannot start with '{EXCLUDE_PREFIX}': {name}")
    return names


def merge_tag_lists(user_tags: List[str], auto_tags: List[str]) -> List[str]:
    """User tags first, then auto tags, each in input order, duplicates dropped."""
    return dedupe_preserving_order(
        [normalize_tag_name(t) for t in user_tags] + [normalize_tag_name(t) for t in auto_tags]
    )


def _clean_auto_token(token: str) -> str:
    token = _DISALLOWED_CHARS.sub('', token.lower())
    token = _UNDERSCORE_RUNS.sub('_', token)
    return token.strip('_')


def parse_auto_tags(text: str, max_tags: int = None) -> List[str]:
    """
    Turn free-text vision model output into tag tokens.

    When the model answers with a comma/newline separated list, each item is
    one tag and its inner spaces become underscores ("blue eyes" ->
    "blue_eyes"). Otherwise whitespace separates tags.
    """
    if not text:
        return []

    text = text.strip().lower()
    if _PHRASE_SEPARATORS.search(text):
        phrases = _PHRASE_SEPARATORS.split(text)
        raw_tokens = ['_'.join(phrase.split()) for phrase in phrases]
    else:
        raw_tokens = text.split()

    tokens = dedupe_preserving_order(_clean_auto_token(t) for t in raw_tokens)
    if max_tags is not None:
        tokens = tokens[:max_tags]
    return tokens


def parse_search_query(query: str) -> Tuple[List[str], List[str]]:
    """
    Split a search expression into (included, excluded) tag names.

    A bare '-' carries no name and is ignored.

    Examples:
        "cat -blue_eyes" -> (['cat'], ['blue_eyes'])
    """
    included, excluded = [], []
    for token in split_tag_string(query):
        if token.startswith(EXCLUDE_PREFIX):
            name = normalize_tag_name(token[len(EXCLUDE_PREFIX):])
            if name:
                excluded.append(name)
        else:
            included.append(token)
    return dedupe_preserving_order(included), dedupe_preserving_order(excluded)
