"""
Digit parsing for raw recognizer output.

Sudoku cells only ever hold 1-9, so characters the recognizer commonly
confuses with those digits are mapped back to them. A "0" is read as a 9
whose tail was lost; do not reuse this table where 0 is a valid digit.
"""

from types import MappingProxyType
from typing import Mapping, Optional


DIGITS = "123456789"

CORRECTIONS: Mapping[str, int] = MappingProxyType({
    "l": 1,
    "I": 1,
    "|": 1,
    "i": 1,
    "!": 1,
    "Z": 2,
    "z": 2,
    "E": 3,
    "A": 4,
    "h": 4,
    "S": 5,
    "s": 5,
    "G": 6,
    "b": 6,
    "T": 7,
    "/": 7,
    "?": 7,
    ")": 7,
    "]": 7,
    "J": 7,
    "j": 7,
    "B": 8,
    "g": 9,
    "q": 9,
    "0": 9,
    "O": 9,
    "o": 9,
})


def parse_digit(text: str, corrections: Mapping[str, int] = CORRECTIONS) -> Optional[int]:
    """
    Parse a Sudoku digit from recognizer text.

    Tries, in order: the whole text being a single digit, the first digit
    anywhere in the text, then the first character with a known correction
    (e.g. 'l' -> 1, 'O' -> 9).

    Args:
        text: Raw recognizer output for one cell
        corrections: Character to digit table

    Returns:
        Digit 1-9, or None if nothing usable was recognized
    """
    clean = text.strip()
    if not clean:
        return None

    if len(clean) == 1 and clean in DIGITS:
        return int(clean)

    for char in clean:
        if char in DIGITS:
            return int(char)

    for char in clean:
        if char in corrections:
            return corrections[char]

    return None
