"""Convert a list of CPU cores into a hexadecimal affinity mask.

The accepted syntax is a list of CPU numbers separated by ``,`` with ranges
written as ``first-last``. A range covers ``first`` up to, but excluding,
``last``; ``1,3,4-8`` therefore yields the mask ``fa``. Numbers may be written
in decimal, octal (leading ``0``) or hexadecimal (leading ``0x``).
"""

from __future__ import annotations

import re
import sys

_DELIMITERS = ",-"
_MAX_CPUS = 64
_SPLIT = re.compile(r"([,-])")
_NUMBER = re.compile(r"\s*\+?(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


def _parse_number(token: str) -> int:
    """Parse the leading integer of ``token``; anything unparsable is 0."""
    match = _NUMBER.match(token)
    if match is None:
        return 0
    digits = match.group(1)
    if digits[:2].lower() == "0x":
        return int(digits, 16)
    if len(digits) > 1 and digits.startswith("0"):
        return int(digits, 8)
    return int(digits, 10)


def cpu_list_to_mask(text: str) -> int:
    """Return the CPU mask described by the core list ``text``.

    Raises ValueError for empty lists, two delimiters in a row, or CPU
    numbers that do not fit in a 64-bit mask.
    """
    last_delim = ","
    body = text.lstrip(_DELIMITERS)
    skipped = len(text) - len(body)
    if skipped:
        last_delim = text[skipped - 1]
    body = body.rstrip(_DELIMITERS)
    if not body:
        raise ValueError(f"empty CPU list: {text!r}")

    parts = _SPLIT.split(body)
    tokens = parts[0::2]
    followers = parts[1::2] + [""]

    mask = 0
    cpu_last = 0
    for token, following in zip(tokens, followers):
        if not token:
            raise ValueError(f"malformed CPU list: {text!r}")
        cpu = _parse_number(token)
        if cpu >= _MAX_CPUS:
            raise ValueError(f"CPU number {cpu} out of range (max {_MAX_CPUS - 1})")
        if last_delim == ",":
            mask |= 1 << cpu
        elif cpu_last < cpu:
            mask |= ((1 << cpu) - 1) ^ ((1 << cpu_last) - 1)
        cpu_last = cpu
        last_delim = following
    return mask


def main(argv: list[str] | None = None) -> int:
    """Print the mask for the first argument in hexadecimal."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        return 1
    try:
        mask = cpu_list_to_mask(args[0])
    except ValueError as exc:
        print(f"cpu_list_to_mask: {exc}", file=sys.stderr)
        return 1
    print(f"{mask:x}")
    return 0


if __name__ == "__main__":
    sys.exit(main())