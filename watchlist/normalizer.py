"""
Name normalization shared by indexing and querying

The same functions run at index-build time and at query time so that list
entries and screened names are always compared in the same form.
"""

import re
import unicodedata
from typing import List

# Letters that carry no combining mark under NFKD and need an explicit fold
_LATIN_FOLDS = str.maketrans({
    'ø': 'o',
    'ł': 'l',
    'đ': 'd',
    'ð': 'd',
    'þ': 'th',
    'æ': 'ae',
    'œ': 'oe',
    'ı': 'i',
    'ħ': 'h',
    'ŧ': 't',
})

_PUNCTUATION = re.compile(r'[^\w\s]|_')
_WHITESPACE = re.compile(r'\s+')


def fold_diacritics(text: str) -> str:
    """Strip accents and fold special Latin letters to their base letters"""
    decomposed = unicodedata.normalize('NFKD', text)
    stripped = ''.join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.translate(_LATIN_FOLDS)


def normalize(name: str) -> str:
    """Normalize a name for matching

    Case-folds, removes diacritics, treats punctuation as a separator and
    collapses whitespace. "  João   M. DÓ " becomes "joao m do". A name made
    only of punctuation keeps its symbols ("..." stays "...").

    Args:
        name: Raw name as supplied by the list or the caller

    Returns:
        Normalized name, empty only for blank input
    """
    if not name:
        return ""
    folded = _WHITESPACE.sub(' ', fold_diacritics(name.casefold())).strip()
    separated = _WHITESPACE.sub(' ', _PUNCTUATION.sub(' ', folded)).strip()
    return separated or folded


def tokenize(normalized_name: str) -> List[str]:
    """Split a normalized name into word tokens, dropping empties"""
    return [t for t in normalized_name.split(' ') if t]


def normalize_tokens(name: str) -> List[str]:
    return tokenize(normalize(name))
