import pytest

from faceoff.core.errors import InvalidInput
from faceoff.services.seeding import (
    generate_seed_pairs,
    is_power_of_two,
    matchups_in_round,
    round_count,
    round_name,
)


class TestGenerateSeedPairs:

    def test_two(self):
        assert generate_seed_pairs(2) == [(1, 2)]

    def test_four(self):
        assert generate_seed_pairs(4) == [(1, 4), (2, 3)]

    def test_eight(self):
        assert generate_seed_pairs(8) == [(1, 8), (4, 5), (3, 6), (2, 7)]

    def test_sixteen_uses_standard_table(self):
        assert generate_seed_pairs(16) == [
            (1, 16), (8, 9), (4, 13), (5, 12), (3, 14), (6, 11), (2, 15), (7, 10),
        ]

    def test_every_seed_appears_once(self):
        for n in (2, 4, 8, 16, 6, 12):
            seeds = [seed for pair in generate_seed_pairs(n) for seed in pair]
            assert sorted(seeds) == list(range(1, n + 1))

    def test_other_even_sizes_pair_top_with_bottom(self):
        assert generate_seed_pairs(6) == [(1, 6), (2, 5), (3, 4)]
        assert generate_seed_pairs(12)[0] == (1, 12)
        assert generate_seed_pairs(12)[-1] == (6, 7)

    def test_returns_a_copy_of_the_table(self):
        pairs = generate_seed_pairs(4)
        pairs.append((9, 9))
        assert generate_seed_pairs(4) == [(1, 4), (2, 3)]

    @pytest.mark.parametrize("n", [0, 1, -2, 3, 7])
    def test_rejects_bad_counts(self, n):
        with pytest.raises(InvalidInput):
            generate_seed_pairs(n)

    @pytest.mark.parametrize("n", ["8", 8.0, True, None])
    def test_rejects_non_integers(self, n):
        with pytest.raises(InvalidInput) as exc_info:
            generate_seed_pairs(n)
        assert exc_info.value.field == "competitors"


class TestRoundCount:

    @pytest.mark.parametrize("n,expected", [(2, 1), (4, 2), (8, 3), (16, 4), (6, 3), (32, 5)])
    def test_log2_rounded_up(self, n, expected):
        assert round_count(n) == expected

    def test_rejects_single_competitor(self):
        with pytest.raises(InvalidInput):
            round_count(1)

    def test_power_of_two(self):
        assert [n for n in range(1, 20) if is_power_of_two(n)] == [1, 2, 4, 8, 16]
        assert not is_power_of_two(0)


class TestRoundName:

    @pytest.mark.parametrize("total", [2, 3, 4, 5])
    def test_names_by_distance_from_final(self, total):
        assert round_name(total, total) == "Championship"
        assert round_name(total - 1, total) == "Finals"
        if total >= 3:
            assert round_name(total - 2, total) == "Semifinals"
        if total >= 4:
            assert round_name(total - 3, total) == "Quarterfinals"

    def test_early_rounds_are_numbered(self):
        assert round_name(1, 5) == "Round 1"
        assert round_name(1, 6) == "Round 1"
        assert round_name(2, 6) == "Round 2"

    def test_single_round_bracket_is_the_championship(self):
        assert round_name(1, 1) == "Championship"

    @pytest.mark.parametrize("round_number", [0, 4])
    def test_out_of_range(self, round_number):
        with pytest.raises(InvalidInput):
            round_name(round_number, 3)

    def test_matchups_halve_each_round(self):
        assert [matchups_in_round(r, 4) for r in range(1, 5)] == [8, 4, 2, 1]
