"""
Reconcile an edited question list with the questions stored for an exam.

reconcile() is pure: it reads one snapshot of the stored questions and
returns a Plan. apply_plan() writes that plan through the caller's session,
so the caller decides the transaction boundary (see exam_service).
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from db.models.answers import Answer
from db.models.questions import Question

from .answer_normalizer import canonical_correct_encoding, options_for, resolve_kind
from .errors import IntegrityViolation, ValidationFailed
from .option_compactor import compact_options

logger = logging.getLogger(__name__)

# a change to any of these can flip is_correct / awarded_points of stored answers
SCORING_FIELDS = ("kind", "options", "correct_encoding", "points")

COLUMNS = (
    "question_text",
    "kind",
    "options",
    "option_images",
    "correct_encoding",
    "points",
    "order_index",
    "image_url",
)


@dataclass
class QuestionFields:
    question_text: str
    kind: str
    options: List[str]
    option_images: List[str]
    correct_encoding: str
    points: int
    order_index: int
    image_url: Optional[str] = None
    # compaction moved at least one option to another position
    indices_shifted: bool = False

    def columns(self) -> Dict[str, object]:
        return {name: getattr(self, name) for name in COLUMNS}


@dataclass
class PlannedUpdate:
    question_id: int
    fields: QuestionFields
    changed: List[str]
    scoring_changed: bool


@dataclass
class Plan:
    exam_id: int
    has_submissions: bool
    to_update: List[PlannedUpdate] = field(default_factory=list)
    to_create: List[QuestionFields] = field(default_factory=list)
    to_preserve: List[int] = field(default_factory=list)
    to_delete: List[int] = field(default_factory=list)

    @property
    def regrade_question_ids(self) -> Set[int]:
        if not self.has_submissions:
            return set()
        return {u.question_id for u in self.to_update if u.scoring_changed}

    @property
    def needs_regrade(self) -> bool:
        return bool(self.regrade_question_ids)

    @property
    def total_points(self) -> int:
        return sum(u.fields.points for u in self.to_update) + sum(f.points for f in self.to_create)

    @property
    def question_count(self) -> int:
        return len(self.to_update) + len(self.to_create)


def _edit_value(edit, name, default=None):
    if isinstance(edit, dict):
        return edit.get(name, default)
    return getattr(edit, name, default)


def _points(value) -> int:
    if value is None or value == "":
        return 1
    try:
        points = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"points must be a whole number, got {value!r}")
    if points <= 0:
        raise ValidationFailed(f"points must be positive, got {points}")
    return points


def prepare_fields(edit, position: int) -> QuestionFields:
    """
    Clean one incoming question: resolve its kind, compact its options and
    images, and canonicalize its correct answer onto the compacted positions.
    """
    text = str(_edit_value(edit, "question_text") or "").strip()
    raw_kind = _edit_value(edit, "kind")
    if not text or not raw_kind:
        raise ValidationFailed(f"question #{position + 1} must have question text and kind")
    kind = resolve_kind(raw_kind)

    order_index = _edit_value(edit, "order_index")
    fields = QuestionFields(
        question_text=text,
        kind=kind,
        options=[],
        option_images=[],
        correct_encoding="",
        points=_points(_edit_value(edit, "points")),
        order_index=position if order_index is None else int(order_index),
        image_url=_edit_value(edit, "image_url") or None,
    )
    if kind == "free_text":
        return fields

    raw_options = options_for(kind, _edit_value(edit, "options"))
    compacted = compact_options(raw_options, _edit_value(edit, "option_images"))
    if not compacted.options:
        raise ValidationFailed(f"question #{position + 1} has no options")

    raw_correct = _edit_value(edit, "correct_answer")
    encoding = ""
    if raw_correct is not None and str(raw_correct).strip():
        # positions are resolved against the options as sent, then moved
        # through the table built before compaction
        original = canonical_correct_encoding(raw_correct, kind, raw_options)
        encoding = compacted.remap_encoding(original)
        if not encoding:
            raise ValidationFailed(
                f"correct answer {raw_correct!r} of question #{position + 1} matches no option"
            )
    fields.options = compacted.options
    fields.option_images = compacted.images
    fields.correct_encoding = encoding
    fields.indices_shifted = compacted.shifted
    return fields


def _diff(current, fields: QuestionFields) -> List[str]:
    changed = [name for name in COLUMNS if getattr(current, name) != getattr(fields, name)]
    if getattr(current, "is_preserved", False):
        changed.append("is_preserved")
    return changed


def _is_scoring_change(changed: Sequence[str], fields: QuestionFields) -> bool:
    if any(name in SCORING_FIELDS for name in changed):
        return True
    return "option_images" in changed and fields.indices_shifted


def reconcile(exam_id: int, persisted: Sequence, incoming: Sequence, has_submissions: bool) -> Plan:
    """
    Decide which stored questions are updated, which incoming rows are
    created, and which stored rows are deleted or, once submissions exist,
    preserved. Scoring-relevant updates are applied and flagged for regrade.
    """
    if not incoming and has_submissions:
        raise IntegrityViolation(
            f"exam {exam_id} has submissions, its question list cannot be emptied"
        )

    plan = Plan(exam_id=exam_id, has_submissions=has_submissions)
    persisted_by_id = {q.id: q for q in persisted}
    seen_ids: Set[int] = set()
    seen_orders: Set[int] = set()

    for position, edit in enumerate(incoming):
        fields = prepare_fields(edit, position)
        if fields.order_index in seen_orders:
            raise ValidationFailed(f"order index {fields.order_index} used twice")
        seen_orders.add(fields.order_index)

        identity = _edit_value(edit, "id")
        current = None
        if identity is not None:
            identity = int(identity)
            if identity in seen_ids:
                raise ValidationFailed(f"question {identity} appears twice in the edit")
            seen_ids.add(identity)
            current = persisted_by_id.get(identity)
            if current is None:
                logger.info("exam %s: question id %s not stored, creating it", exam_id, identity)

        if current is None:
            plan.to_create.append(fields)
            continue

        changed = _diff(current, fields)
        plan.to_update.append(
            PlannedUpdate(
                question_id=current.id,
                fields=fields,
                changed=changed,
                scoring_changed=_is_scoring_change(changed, fields),
            )
        )

    absent = [q.id for q in persisted if q.id not in seen_ids]
    if has_submissions:
        already = {q.id for q in persisted if q.is_preserved}
        plan.to_preserve = [qid for qid in absent if qid not in already]
    else:
        plan.to_delete = absent

    logger.info(
        "exam %s plan: %d update, %d create, %d preserve, %d delete, regrade %s",
        exam_id,
        len(plan.to_update),
        len(plan.to_create),
        len(plan.to_preserve),
        len(plan.to_delete),
        sorted(plan.regrade_question_ids),
    )
    return plan


def apply_plan(session, exam_id: int, plan: Plan) -> List[Question]:
    """Write a plan through session. Returns the newly created questions."""
    for update in plan.to_update:
        question = session.get(Question, update.question_id)
        for name, value in update.fields.columns().items():
            setattr(question, name, value)
        question.is_preserved = False

    for question_id in plan.to_preserve:
        session.get(Question, question_id).is_preserved = True
        logger.warning("exam %s: question %s kept for recorded answers", exam_id, question_id)

    if plan.to_delete:
        referenced = (
            session.query(Answer.question_id)
            .filter(Answer.question_id.in_(plan.to_delete))
            .distinct()
            .all()
        )
        if referenced:
            raise IntegrityViolation(
                f"questions {sorted(r[0] for r in referenced)} are referenced by answers"
            )
        for question_id in plan.to_delete:
            session.delete(session.get(Question, question_id))

    created = []
    for fields in plan.to_create:
        question = Question(exam_id=exam_id, is_preserved=False, **fields.columns())
        session.add(question)
        created.append(question)

    session.flush()
    return created
