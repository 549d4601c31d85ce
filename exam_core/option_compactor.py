import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .answer_normalizer import decode_encoding, normalize_text
from .config import MAX_OPTIONS
from .errors import CapacityExceeded, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass
class CompactionResult:
    options: List[str]
    images: List[str]
    # original position -> compacted position; dropped positions are absent
    index_map: Dict[int, int] = field(default_factory=dict)

    @property
    def shifted(self) -> bool:
        return any(src != dst for src, dst in self.index_map.items())

    def remap_index(self, index: int) -> Optional[int]:
        return self.index_map.get(index)

    def remap_encoding(self, encoding: str) -> str:
        """
        Rewrite a canonical index encoding ("3" or "0,3") from original to
        compacted positions. References to dropped options disappear.
        """
        return remap_encoding(encoding, self.index_map)


def _align(options: Sequence[str], images: Optional[Sequence[str]]) -> Tuple[List[str], List[str]]:
    texts = [str(o or "").strip() for o in (options or [])]
    pics = [str(i or "").strip() for i in (images or [])]

    extra = pics[len(texts):]
    if any(extra):
        raise ValidationFailed(
            f"{len(pics)} option images given for {len(texts)} options"
        )
    pics = pics[:len(texts)]
    pics += [""] * (len(texts) - len(pics))
    return texts, pics


def build_index_map(options: Sequence[str], images: Optional[Sequence[str]] = None) -> Dict[int, int]:
    """
    Decide, before anything is removed, where every original option lands.

    An option survives when it has text or an image. A repeat of an earlier
    option (same text, same image) maps onto the earlier one.
    """
    texts, pics = _align(options, images)
    index_map: Dict[int, int] = {}
    seen: Dict[Tuple[str, str], int] = {}
    next_index = 0
    for i, (text, pic) in enumerate(zip(texts, pics)):
        if not text and not pic:
            continue
        key = (normalize_text(text), pic)
        if key in seen:
            index_map[i] = seen[key]
            continue
        seen[key] = next_index
        index_map[i] = next_index
        next_index += 1
    return index_map


def compact_options(options: Sequence[str], images: Optional[Sequence[str]] = None,
                    max_options: Optional[int] = None) -> CompactionResult:
    limit = MAX_OPTIONS if max_options is None else max_options
    if len(options or []) > limit:
        raise CapacityExceeded(len(options), limit)

    texts, pics = _align(options, images)
    index_map = build_index_map(texts, pics)

    kept_options: List[str] = []
    kept_images: List[str] = []
    for i, (text, pic) in enumerate(zip(texts, pics)):
        if index_map.get(i) == len(kept_options):
            kept_options.append(text)
            kept_images.append(pic)

    dropped = len(texts) - len(kept_options)
    if dropped:
        logger.debug("compacted %d option slot(s) away, index map %s", dropped, index_map)

    return CompactionResult(options=kept_options, images=kept_images, index_map=index_map)


def compact(options: Sequence[str], images: Optional[Sequence[str]] = None,
            max_options: Optional[int] = None) -> Tuple[List[str], List[str]]:
    result = compact_options(options, images, max_options=max_options)
    return result.options, result.images


def remap_encoding(encoding: str, index_map: Dict[int, int]) -> str:
    remapped = {index_map[i] for i in decode_encoding(encoding) if i in index_map}
    return ",".join(str(i) for i in sorted(remapped))
