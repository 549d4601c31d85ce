from typing import NamedTuple, Optional

from .answer_normalizer import (
    CanonicalAnswer,
    IndexSet,
    SingleIndex,
    normalize,
    normalize_text,
    options_for,
    resolve_kind,
)


class GradeResult(NamedTuple):
    is_correct: bool
    awarded_points: float


def _literal(answer: CanonicalAnswer, raw, options) -> str:
    if isinstance(answer, SingleIndex):
        if answer.index < len(options):
            return normalize_text(options[answer.index])
        return str(answer.index)
    return normalize_text(raw)


def _single_matches(question, kind, options, raw_response) -> bool:
    correct = normalize(question.correct_encoding, kind, options)
    given = normalize(raw_response, kind, options)
    if isinstance(correct, SingleIndex) and isinstance(given, SingleIndex):
        return correct.index == given.index

    # one side is stored as literal text (legacy rows), compare option texts
    expected = _literal(correct, question.correct_encoding, options)
    actual = _literal(given, raw_response, options)
    return bool(expected) and expected == actual


def _set_matches(question, kind, options, raw_response) -> bool:
    correct = normalize(question.correct_encoding, kind, options)
    given = normalize(raw_response, kind, options)
    if not isinstance(correct, IndexSet) or not isinstance(given, IndexSet):
        return False
    return correct.indices == given.indices


def grade(question, raw_response, previous_points: Optional[float] = None) -> GradeResult:
    """
    Decide correctness and points of one response to one question.

    free_text is never auto-graded: the result carries previous_points (the
    grader's score, 0 for a new answer) unchanged. Everything else is all or
    nothing.
    """
    kind = resolve_kind(question.kind)

    if kind == "free_text":
        return GradeResult(False, float(previous_points or 0))

    if raw_response is None or not str(raw_response).strip():
        return GradeResult(False, 0.0)

    options = options_for(kind, question.options)
    if kind == "multi_choice":
        is_correct = _set_matches(question, kind, options, raw_response)
    else:
        is_correct = _single_matches(question, kind, options, raw_response)

    points = float(question.points or 0) if is_correct else 0.0
    return GradeResult(is_correct, points)
