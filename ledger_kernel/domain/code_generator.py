"""
CodeGenerator -- deterministic child GL codes.

Responsibility:
    Derives the next code for a new child of a parent account: parent code
    as prefix, followed by max(existing numeric suffix) + 1, zero-padded.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Generated codes start with the parent's code.
    - Repeated generate-then-insert yields strictly increasing codes.
    - The returned code is not already used anywhere in the forest; if
      max + 1 is taken by an account elsewhere, the suffix advances until
      it is free.
    - Suffix width is a minimum: past 99 children the suffix simply grows
      ("11" -> "11100"), it is never truncated.

Failure modes:
    - ParentAccountNotFoundError when parent_id is None or unknown.
"""

import re

from ledger_kernel.domain.account_tree import AccountTree
from ledger_kernel.exceptions import ParentAccountNotFoundError

DEFAULT_SUFFIX_WIDTH = 2

_LEADING_DIGITS = re.compile(r"\d+")


def child_suffixes(tree: AccountTree, parent_id: str) -> list[int]:
    """Numeric suffixes of the parent's children that share its code prefix."""
    parent = tree.get(parent_id)
    if parent is None:
        raise ParentAccountNotFoundError(parent_id)
    prefix = parent.code
    suffixes: list[int] = []
    for child in tree.children_of(parent_id):
        if not child.code.startswith(prefix):
            continue
        match = _LEADING_DIGITS.match(child.code[len(prefix):])
        if match:
            suffixes.append(int(match.group()))
    return suffixes


def next_child_code(
    tree: AccountTree,
    parent_id: str | None,
    width: int = DEFAULT_SUFFIX_WIDTH,
) -> str:
    """
    Return the next free child code under ``parent_id``.

    Examples:
        parent "11", no children            -> "1101"
        parent "11", children 1101, 1102    -> "1103"
        parent "11", children 1101, 1199    -> "11100"
    """
    if parent_id is None:
        raise ParentAccountNotFoundError(None)
    suffixes = child_suffixes(tree, parent_id)
    prefix = tree.require(parent_id).code

    next_value = max(suffixes) + 1 if suffixes else 1
    candidate = f"{prefix}{next_value:0{width}d}"
    while tree.find_by_code(candidate) is not None:
        next_value += 1
        candidate = f"{prefix}{next_value:0{width}d}"
    return candidate
