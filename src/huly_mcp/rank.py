"""Lexicographic ordering keys for issue lists.

A rank positions an item in a list without touching its neighbours: a new key
is always generated strictly between two existing ones (or after the last
one). Keys are opaque strings outside this module; only their lexicographic
order is meaningful.

Appends add a fixed step to the key instead of bisecting towards the
maximum, so keys keep a constant length for any realistic list size.

Two appends that read the same "last rank" concurrently will compute the
same key. Nothing here prevents that; see DESIGN.md.
"""

from typing import NewType, Optional

Rank = NewType("Rank", str)

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_BASE = len(_DIGITS)
_INDEX = {c: i for i, c in enumerate(_DIGITS)}

# Appended keys are padded to this width and advance at this digit position,
# leaving the two trailing digits free for later insertions in between.
RANK_WIDTH = 6
_STEP_POSITION = 3


def _midpoint(lower: str, upper: Optional[str]) -> str:
    """Digit string strictly between lower ("" = minimum) and upper (None = maximum).

    Generated strings never end in the zero digit, which keeps the space
    dense: there is always room between any two of them.
    """
    if upper is not None:
        n = 0
        while n < len(upper) and (lower[n] if n < len(lower) else "0") == upper[n]:
            n += 1
        if n > 0:
            return upper[:n] + _midpoint(lower[n:], upper[n:])

    lo = _INDEX[lower[0]] if lower else 0
    hi = _INDEX[upper[0]] if upper else _BASE
    if hi - lo > 1:
        return _DIGITS[(lo + hi) // 2]
    if upper is not None and len(upper) > 1:
        return upper[0]
    return _DIGITS[lo] + _midpoint(lower[1:], None)


def _split(key: str) -> tuple[str, str]:
    """Split a key into a foreign prefix and its trailing digit run."""
    i = len(key)
    while i > 0 and key[i - 1] in _INDEX:
        i -= 1
    return key[:i], key[i:]


def initial_rank() -> Rank:
    """Key for the first item of an empty list."""
    return Rank("h" + "z" * (RANK_WIDTH - 1))


def _increment(digits: str) -> str:
    """Add a fixed step to a digit run; extend it only when the step overflows."""
    padded = digits.ljust(RANK_WIDTH, "0")
    width = len(padded)
    value = int(padded, _BASE) + _BASE ** (width - _STEP_POSITION - 1)
    if value >= _BASE ** width:
        return digits + _midpoint("", None)

    out = []
    for _ in range(width):
        value, digit = divmod(value, _BASE)
        out.append(_DIGITS[digit])
    # Trailing zeros would leave no room for a key between this and a shorter one
    return "".join(reversed(out)).rstrip("0")


def rank_after(previous: Optional[str]) -> Rank:
    """Key sorting after ``previous`` (or the initial key when there is none).

    Keys produced elsewhere (e.g. ``0|hzzzzz:``) are extended after their last
    non-digit character, so the result still sorts after them.
    """
    if not previous:
        return initial_rank()
    prefix, digits = _split(previous)
    if not digits:
        return Rank(prefix + initial_rank())
    return Rank(prefix + _increment(digits))


def rank_between(lower: Optional[str], upper: Optional[str]) -> Rank:
    """Key strictly between ``lower`` and ``upper``; either bound may be None."""
    if upper is None:
        return rank_after(lower)
    lower = lower or ""
    if lower >= upper:
        raise ValueError(f"Lower rank {lower!r} must sort before upper rank {upper!r}")

    lower_prefix, lower_digits = _split(lower)
    upper_prefix, upper_digits = _split(upper)
    if lower_prefix != upper_prefix or not upper_digits or upper_digits.endswith("0"):
        raise ValueError(f"No key can be generated between {lower!r} and {upper!r}")
    return Rank(upper_prefix + _midpoint(lower_digits, upper_digits))
