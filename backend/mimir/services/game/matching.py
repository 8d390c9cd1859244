"""Accent-tolerant matching of a spoken answer against the canonical one.

Speech recognition mangles names and foreign words, so answers are compared
on a coarse phonetic key rather than spelling. This is a heuristic: the only
guarantees are determinism and the acceptance threshold below.
"""

import re
from typing import List

from .state import AnswerResult

DEFAULT_THRESHOLD = 0.6

STOP_WORDS = frozenset({
    'the', 'a', 'an', 'of', 'in', 'on', 'at', 'to', 'for', 'with', 'by',
    'is', 'are', 'was', 'were',
})

_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r'\s+')
_VOWEL_RUN = re.compile(r'[aeiouy]+')

# Applied in order, before the single-letter table
_DIGRAPHS = (('th', 't'), ('ph', 'f'), ('ck', 'k'), ('sh', 's'), ('ch', 'k'), ('qu', 'kv'))
# w -> v -> b, so both land on b
_LETTERS = str.maketrans({'w': 'b', 'v': 'b', 'z': 's', 'c': 'k', 'r': None, 'h': None})

_CODE_GROUPS = {
    **dict.fromkeys('bfpv', '1'),
    **dict.fromkeys('cgjkqsxz', '2'),
    **dict.fromkeys('dt', '3'),
    'l': '4',
    **dict.fromkeys('mn', '5'),
}


def normalize(text: str) -> str:
    text = _PUNCTUATION.sub('', text.lower())
    words = _WHITESPACE.sub(' ', text).strip().split(' ')
    while words and words[0] in STOP_WORDS:
        words.pop(0)
    return ' '.join(w for w in words if w)


def phonetic_form(text: str) -> str:
    s = text.replace(' ', '')
    for src, dst in _DIGRAPHS:
        s = s.replace(src, dst)
    s = s.translate(_LETTERS)
    return _VOWEL_RUN.sub('a', s)


def phonetic_code(text: str) -> str:
    """Four-character Soundex-style key of a phonetic form."""
    form = phonetic_form(text)
    if not form:
        return ''
    head = form[0]
    digits = []
    last = _CODE_GROUPS.get(head)
    for ch in form[1:]:
        digit = _CODE_GROUPS.get(ch)
        if digit is None:
            continue
        if digit != last:
            digits.append(digit)
        last = digit
    return (head.upper() + ''.join(digits) + '000')[:4]


def phonetically_similar(a: str, b: str) -> bool:
    if not a or not b:
        return False
    if a == b:
        return True
    # Numbers must match exactly, as whole words
    if any(ch.isdigit() for ch in a + b):
        return a in b.split(' ') or b in a.split(' ')
    if min(len(a), len(b)) < 2:
        return False
    if a in b or b in a:
        return True

    fa, fb = phonetic_form(a), phonetic_form(b)
    if fa and fb:
        if fa == fb:
            return True
        if min(len(fa), len(fb)) >= 3 and (fa in fb or fb in fa):
            return True

    ca, cb = phonetic_code(a), phonetic_code(b)
    if ca and cb:
        if ca == cb or ca[:3] == cb[:3]:
            return True
        if ca[0] == cb[0] and (set(ca[1:]) & set(cb[1:])) - {'0'}:
            return True

    if min(len(a), len(b)) <= 4:
        return _short_overlap(a.replace(' ', ''), b.replace(' ', ''))
    return False


def _short_overlap(a: str, b: str) -> bool:
    short, other = (a, b) if len(a) <= len(b) else (b, a)
    if not short or short[0] != other[0]:
        return False
    shared = set(short) & set(other)
    return len(shared) / len(set(short)) >= 0.75


def _words(text: str) -> List[str]:
    return [w for w in text.split(' ') if len(w) >= 2]


def match(spoken: str, correct: str, threshold: float = DEFAULT_THRESHOLD) -> AnswerResult:
    if not spoken or not spoken.strip():
        return AnswerResult.TIMEOUT

    norm_spoken = normalize(spoken)
    norm_correct = normalize(correct)
    if not norm_spoken or not norm_correct:
        raw_spoken = spoken.strip().lower()
        raw_correct = correct.strip().lower()
        if raw_correct and (raw_correct in raw_spoken or raw_spoken in raw_correct):
            return AnswerResult.CORRECT
        return AnswerResult.INCORRECT

    correct_words = _words(norm_correct)
    if len(correct_words) <= 1:
        matched = phonetically_similar(norm_spoken, norm_correct)
        return AnswerResult.CORRECT if matched else AnswerResult.INCORRECT

    spoken_words = _words(norm_spoken)
    hits = sum(
        1 for cw in correct_words
        if any(phonetically_similar(cw, sw) for sw in spoken_words)
    )
    ratio = hits / len(correct_words)
    return AnswerResult.CORRECT if ratio >= threshold else AnswerResult.INCORRECT
