"""Tests for range generation and truncation strategies."""

from __future__ import annotations

import itertools

import pytest

from tokenforge.truncation import (
    DefaultTruncator,
    LeftDirectionRangeGenerator,
    LongestFirstTruncator,
    OnlyFirstTruncator,
    OnlySecondTruncator,
    Range,
    RightDirectionRangeGenerator,
)


class TestRangeGenerators:
    def test_right_without_stride(self) -> None:
        assert RightDirectionRangeGenerator().get_ranges(10, 4, 0) == [
            Range(0, 4), Range(4, 4), Range(8, 2),
        ]

    def test_right_with_stride(self) -> None:
        assert RightDirectionRangeGenerator().get_ranges(10, 4, 1) == [
            Range(0, 4), Range(3, 4), Range(6, 4),
        ]

    def test_left_without_stride(self) -> None:
        assert LeftDirectionRangeGenerator().get_ranges(10, 4, 0) == [
            Range(6, 4), Range(2, 4), Range(0, 2),
        ]

    def test_short_sequence_is_one_window(self) -> None:
        assert RightDirectionRangeGenerator().get_ranges(3, 4, 1) == [Range(0, 3)]
        assert LeftDirectionRangeGenerator().get_ranges(0, 4, 0) == [Range(0, 0)]

    @pytest.mark.parametrize(("max_len", "stride"), [(0, 0), (4, 4), (4, 5), (4, -1)])
    def test_invalid_parameters(self, max_len: int, stride: int) -> None:
        with pytest.raises(ValueError):
            RightDirectionRangeGenerator().get_ranges(10, max_len, stride)
        with pytest.raises(ValueError):
            LeftDirectionRangeGenerator().get_ranges(10, max_len, stride)

    def test_range_helpers(self) -> None:
        r = Range.from_to(2, 5)
        assert r == Range(2, 3)
        assert r.stop == 5
        assert r.slice([0, 1, 2, 3, 4, 5]) == [2, 3, 4]


class TestLongestFirst:
    def test_fits_untouched(self) -> None:
        a, b = LongestFirstTruncator(10).truncate([1, 2], [3, 4], 2)
        assert a == [[1, 2]]
        assert b == [[3, 4]]

    def test_shorter_sequence_kept(self) -> None:
        a, b = LongestFirstTruncator(12).truncate(list(range(3)), list(range(20)), 2)
        assert a[0] == [0, 1, 2]
        assert b[0] == list(range(7))
        assert b[1:] == [list(range(7, 14)), list(range(14, 20))]

    def test_equal_lengths_split_evenly(self) -> None:
        a, b = LongestFirstTruncator(11).truncate(list(range(8)), list(range(8)), 0)
        assert (len(a[0]), len(b[0])) == (5, 6)

    def test_longer_first_sequence(self) -> None:
        a, b = LongestFirstTruncator(10).truncate(list(range(20)), list(range(3)), 0)
        assert (len(a[0]), len(b[0])) == (7, 3)

    def test_truncated_pair_fills_max_length(self) -> None:
        for len_a, len_b, max_len, added in itertools.product(
            (0, 1, 3, 7, 20), (0, 2, 5, 13), (4, 9, 16), (0, 1, 3)
        ):
            a, b = LongestFirstTruncator(max_len).truncate(
                list(range(len_a)), list(range(len_b)), added
            )
            total = len(a[0]) + len(b[0]) + added
            if len_a + len_b + added > max_len:
                assert total == max_len, (len_a, len_b, max_len, added)
            else:
                assert total == len_a + len_b + added

    def test_single_sequence_with_overflow(self) -> None:
        a, b = LongestFirstTruncator(6).truncate(list(range(10)), None, 2)
        assert b is None
        assert a == [[0, 1, 2, 3], [4, 5, 6, 7], [8, 9]]

    def test_single_sequence_with_stride(self) -> None:
        a, _ = LongestFirstTruncator(4, stride=2).truncate(list(range(6)), None, 0)
        assert a == [[0, 1, 2, 3], [2, 3, 4, 5]]

    def test_single_sequence_stride_wider_than_budget(self) -> None:
        a, b = LongestFirstTruncator(4, stride=2).truncate(list(range(8)), None, 2)
        assert (a, b) == ([[0, 1]], None)
        a, _ = LongestFirstTruncator(4, stride=3, direction="left").truncate(
            list(range(8)), None, 1
        )
        assert a == [[5, 6, 7]]

    def test_left_direction_keeps_the_tail(self) -> None:
        a, _ = LongestFirstTruncator(4, direction="left").truncate(list(range(6)), None, 0)
        assert a[0] == [2, 3, 4, 5]
        assert a[1] == [0, 1]

    def test_no_room_for_added_tokens(self) -> None:
        with pytest.raises(ValueError, match="no room"):
            LongestFirstTruncator(2).truncate([1, 2, 3], None, 2)

    @pytest.mark.parametrize(("max_len", "stride"), [(0, 0), (-1, 0), (4, 4), (4, -1)])
    def test_invalid_construction(self, max_len: int, stride: int) -> None:
        with pytest.raises(ValueError):
            LongestFirstTruncator(max_len, stride=stride)


class TestOtherTruncators:
    def test_default_is_identity(self) -> None:
        assert DefaultTruncator().truncate([1, 2, 3], None, 10) == ([[1, 2, 3]], None)
        assert DefaultTruncator().truncate([1], [2], 10) == ([[1]], [[2]])

    def test_only_first(self) -> None:
        a, b = OnlyFirstTruncator(6).truncate(list(range(8)), [9, 9], 0)
        assert a[0] == [0, 1, 2, 3]
        assert b == [[9, 9]]

    def test_only_second(self) -> None:
        a, b = OnlySecondTruncator(6).truncate([9, 9], list(range(8)), 0)
        assert a == [[9, 9]]
        assert b[0] == [0, 1, 2, 3]

    def test_only_first_stride_wider_than_budget(self) -> None:
        a, b = OnlyFirstTruncator(6, stride=3).truncate(list(range(8)), [9, 9, 9], 1)
        assert a == [[0, 1]]
        assert b == [[9, 9, 9]]

    def test_only_second_stride_wider_than_budget(self) -> None:
        a, b = OnlySecondTruncator(6, stride=3).truncate([9, 9, 9], list(range(8)), 1)
        assert a == [[9, 9, 9]]
        assert b == [[0, 1]]

    def test_only_first_without_room(self) -> None:
        with pytest.raises(ValueError):
            OnlyFirstTruncator(4).truncate([1, 2, 3], [4, 5, 6, 7], 0)
