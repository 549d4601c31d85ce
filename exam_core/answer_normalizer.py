import json
import logging
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Union

from .config import BOOLEAN_OPTIONS, FALSE_WORDS, KIND_ALIASES, QUESTION_KINDS, TRUE_WORDS
from .errors import ParseFailure, ValidationFailed

logger = logging.getLogger(__name__)

_STRONG_DELIMITERS = re.compile(r"[,;|/]")
_DIGITS = re.compile(r"[0-9]+")
_QUOTES = re.compile(r"^[\"'`]+|[\"'`]+$")
# tick and cross glyphs students paste in along with the option text
_MARKERS = re.compile("[✑-✠√]")


# ============ Canonical answer variants ============

@dataclass(frozen=True)
class NoAnswer:
    def encode(self) -> str:
        return ""


@dataclass(frozen=True)
class SingleIndex:
    index: int

    def encode(self) -> str:
        return str(self.index)


@dataclass(frozen=True)
class IndexSet:
    indices: FrozenSet[int]

    def encode(self) -> str:
        return ",".join(str(i) for i in sorted(self.indices))


@dataclass(frozen=True)
class Text:
    value: str

    def encode(self) -> str:
        return self.value


CanonicalAnswer = Union[NoAnswer, SingleIndex, IndexSet, Text]

NO_ANSWER = NoAnswer()


def resolve_kind(kind: str) -> str:
    """Map legacy kind names onto the four kinds the engine grades."""
    value = (kind or "").strip().lower()
    value = KIND_ALIASES.get(value, value)
    if value not in QUESTION_KINDS:
        raise ValidationFailed(f"unknown question kind: {kind!r}")
    return value


def normalize_text(value) -> str:
    text = re.sub(r"\s+", " ", str(value or "")).strip()
    text = _QUOTES.sub("", text)
    text = _MARKERS.sub("", text)
    return text.strip().casefold()


def options_for(kind: str, options: Optional[Sequence[str]]) -> List[str]:
    if kind == "boolean" and not options:
        return list(BOOLEAN_OPTIONS)
    return list(options or [])


# ============ Tokenizing ============

def _split_tokens(raw: str) -> List[str]:
    # JSON arrays come from mobile clients: ["A", "C"] or [0, 2]
    if raw.startswith("[") and raw.endswith("]"):
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [str(p).strip() for p in parsed if str(p).strip()]
        # hand-typed lists such as [A, C]
        raw = raw[1:-1]

    if _STRONG_DELIMITERS.search(raw):
        tokens = _STRONG_DELIMITERS.split(raw)
    else:
        words = raw.split()
        # whitespace only separates bare indices or letters, e.g. "0 2" or "A C"
        if len(words) > 1 and all(_is_short_token(w) for w in words):
            tokens = words
        else:
            tokens = [raw]

    return [t.strip() for t in tokens if t.strip()]


def _is_short_token(token: str) -> bool:
    return bool(_DIGITS.fullmatch(token)) or _is_letter(token)


def _is_letter(token: str) -> bool:
    return len(token) == 1 and token.isascii() and token.isalpha()


def _in_range(index: int, options: List[str]) -> Optional[int]:
    # without a known option list every index is taken as given
    if not options:
        return index
    if 0 <= index < len(options):
        return index
    return None


def _lookup_option(token: str, options: List[str]) -> Optional[int]:
    wanted = normalize_text(token)
    if not wanted:
        return None
    for i, option in enumerate(options):
        if normalize_text(option) == wanted:
            return i
    return None


def _boolean_word(token: str) -> Optional[int]:
    word = normalize_text(token)
    if word in TRUE_WORDS:
        return 0
    if word in FALSE_WORDS:
        return 1
    return None


def _classify(token: str, kind: str, options: List[str], prefer_text: bool) -> Optional[int]:
    if _DIGITS.fullmatch(token):
        if prefer_text:
            by_text = _lookup_option(token, options)
            if by_text is not None:
                return by_text
        index = _in_range(int(token), options)
        if index is None and not prefer_text:
            index = _lookup_option(token, options)
        return index

    if _is_letter(token):
        index = _in_range(ord(token.upper()) - ord("A"), options)
        if index is not None:
            return index
        # past the last option: a one-letter option text such as "x", or "T" / "F" on a boolean

    index = _lookup_option(token, options)
    if index is None and kind == "boolean":
        index = _boolean_word(token)
    return index


# ============ Public API ============

def normalize(raw, kind: str, options: Optional[Sequence[str]] = None, strict: bool = False) -> CanonicalAnswer:
    """
    Parse a raw answer encoding into its canonical form.

    Tokens are read as zero-based indices ("0,2"), letters ("A,C") or option
    texts ("Jakarta; Bandung"). Tokens that match nothing are dropped; with
    strict=True they raise ParseFailure instead. An answer with no usable
    token normalizes to NO_ANSWER.
    """
    kind = resolve_kind(kind)
    options = options_for(kind, options)

    if raw is None:
        return NO_ANSWER
    if isinstance(raw, (list, tuple)):
        raw = json.dumps(list(raw))
    elif not isinstance(raw, str):
        raw = str(raw)

    text = raw.strip()
    if not text:
        return NO_ANSWER

    if kind == "free_text":
        return Text(text)

    indices: List[int] = []
    whole = None
    if not _is_short_token(text):
        whole = _lookup_option(text, options)

    if whole is not None:
        indices.append(whole)
    else:
        tokens = _split_tokens(text)
        all_digits = all(_DIGITS.fullmatch(t) for t in tokens)
        dropped = []
        for token in tokens:
            index = _classify(token, kind, options, prefer_text=not all_digits)
            if index is None:
                dropped.append(token)
            elif index not in indices:
                indices.append(index)

        if dropped:
            if strict:
                raise ParseFailure(f"unrecognized answer tokens {dropped!r} in {raw!r}")
            logger.debug("dropped unrecognized answer tokens %r from %r", dropped, raw)

    if not indices:
        return NO_ANSWER
    if kind == "multi_choice":
        return IndexSet(frozenset(indices))
    return SingleIndex(indices[0])


def canonical_correct_encoding(raw, kind: str, options: Optional[Sequence[str]] = None, strict: bool = False) -> str:
    kind = resolve_kind(kind)
    if kind == "free_text":
        return ""
    return normalize(raw, kind, options, strict=strict).encode()


def decode_encoding(encoding: str) -> List[int]:
    """Indices of an already canonical encoding ("2" or "0,2")."""
    parts = (p.strip() for p in (encoding or "").split(","))
    return sorted({int(p) for p in parts if _DIGITS.fullmatch(p)})
