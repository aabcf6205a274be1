"""
Bracket seeding: first-round pairings, round counts and round display names.

Pure functions, no database access.
"""
import math
from typing import Dict, List, Tuple

from faceoff.core.errors import InvalidInput

SeedPair = Tuple[int, int]

# Canonical tables: seed 1 meets the lowest seed and can only meet seed 2 in the final.
SEED_TABLES: Dict[int, List[SeedPair]] = {
    2: [(1, 2)],
    4: [(1, 4), (2, 3)],
    8: [(1, 8), (4, 5), (3, 6), (2, 7)],
    16: [(1, 16), (8, 9), (4, 13), (5, 12), (3, 14), (6, 11), (2, 15), (7, 10)],
}

ROUND_NAMES_FROM_FINAL = {
    0: "Championship",
    1: "Finals",
    2: "Semifinals",
    3: "Quarterfinals",
}


def _validate_count(n) -> int:
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidInput("Competitor count must be a positive integer", field="competitors")
    if n < 2:
        raise InvalidInput("At least 2 competitors are required for a bracket", field="competitors")
    return n


def generate_seed_pairs(n: int) -> List[SeedPair]:
    """
    Ordered (high seed, low seed) pairs for the first round of an n-competitor bracket.

    Sizes 2, 4, 8 and 16 use the standard tournament tables. Any other even
    size pairs seed i+1 with seed n-i.
    """
    n = _validate_count(n)
    if n in SEED_TABLES:
        return list(SEED_TABLES[n])
    if n % 2:
        raise InvalidInput(f"Cannot pair an odd number of competitors ({n})", field="competitors")
    return [(i + 1, n - i) for i in range(n // 2)]


def round_count(n: int) -> int:
    n = _validate_count(n)
    return math.ceil(math.log2(n))


def is_power_of_two(n: int) -> bool:
    return n >= 1 and n & (n - 1) == 0


def round_name(round_number: int, total_rounds: int) -> str:
    """Display name by distance from the final round."""
    if round_number < 1 or round_number > total_rounds:
        raise InvalidInput(f"Round {round_number} is outside a {total_rounds}-round bracket", field="round_number")
    return ROUND_NAMES_FROM_FINAL.get(total_rounds - round_number, f"Round {round_number}")


def matchups_in_round(round_number: int, total_rounds: int) -> int:
    return 2 ** (total_rounds - round_number)
