import pytest

from exam_core.errors import CapacityExceeded, ValidationFailed
from exam_core.option_compactor import compact, compact_options


def test_photo_only_options_survive_and_empty_slots_go():
    options, images = compact(["", "B", "", "D"], ["img1", "", "", ""])
    assert options == ["", "B", "D"]
    assert images == ["img1", "", ""]


def test_index_table_is_built_before_compaction():
    result = compact_options(["", "B", "", "D"], ["img1", "", "", ""])
    assert result.index_map == {0: 0, 1: 1, 3: 2}
    assert result.remap_index(3) == 2
    assert result.remap_index(2) is None
    assert result.remap_encoding("3") == "2"
    assert result.remap_encoding("1,3") == "1,2"
    # a reference to a dropped slot disappears
    assert result.remap_encoding("2") == ""
    assert result.shifted


def test_nothing_dropped_means_no_shift():
    result = compact_options(["A", "B", ""], None)
    assert result.options == ["A", "B"]
    assert result.images == ["", ""]
    assert not result.shifted


def test_capacity_checked_before_compaction():
    with pytest.raises(CapacityExceeded):
        compact(["a", "b", "c", "d", "e", ""], [])
    with pytest.raises(CapacityExceeded):
        compact(["a", "b", "c"], [], max_options=2)


def test_short_image_list_is_padded():
    assert compact(["a", "b"], ["img"]) == (["a", "b"], ["img", ""])


def test_image_without_option_slot_is_rejected():
    with pytest.raises(ValidationFailed):
        compact(["a"], ["", "img"])
    assert compact(["a"], ["", ""]) == (["a"], [""])


def test_repeated_option_maps_onto_first():
    result = compact_options(["A", "a ", "B"], [])
    assert result.options == ["A", "B"]
    assert result.index_map == {0: 0, 1: 0, 2: 1}


def test_whitespace_only_text_counts_as_empty():
    assert compact(["A", "   ", "B"], []) == (["A", "B"], ["", ""])
