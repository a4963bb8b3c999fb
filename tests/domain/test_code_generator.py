"""Child code generation: parent prefix + zero-padded max suffix + 1."""

import pytest

from ledger_kernel.domain.account import Account, AccountLevel, AccountType
from ledger_kernel.domain.account_tree import AccountTree
from ledger_kernel.domain.code_generator import child_suffixes, next_child_code
from ledger_kernel.exceptions import ParentAccountNotFoundError


def _node(id, code, parent_id=None):
    return Account(
        id=id,
        code=code,
        name=code,
        type=AccountType.ASSET,
        level=AccountLevel.ROOT if parent_id is None else AccountLevel.BRANCH,
        parent_id=parent_id,
        is_main=True,
    )


@pytest.fixture
def fresh_tree():
    """Assets root with a childless Current Assets branch."""
    return AccountTree([_node("R1", "1"), _node("N11", "11", "R1")])


def _add_child(tree, parent_id, width=2):
    code = next_child_code(tree, parent_id, width)
    tree.insert(_node(f"ID-{code}", code, parent_id))
    return code


class TestNextChildCode:
    def test_first_child_gets_suffix_01(self, fresh_tree):
        assert next_child_code(fresh_tree, "N11") == "1101"

    def test_sequence_is_increasing(self, fresh_tree):
        assert _add_child(fresh_tree, "N11") == "1101"
        assert _add_child(fresh_tree, "N11") == "1102"
        assert _add_child(fresh_tree, "N11") == "1103"

    def test_gap_continues_after_max(self, fresh_tree):
        fresh_tree.insert(_node("X", "1107", "N11"))
        assert next_child_code(fresh_tree, "N11") == "1108"

    def test_width_is_a_minimum(self, fresh_tree):
        fresh_tree.insert(_node("X", "1199", "N11"))
        assert next_child_code(fresh_tree, "N11") == "11100"

    def test_custom_width(self, fresh_tree):
        assert next_child_code(fresh_tree, "N11", width=3) == "11001"

    def test_children_without_parent_prefix_are_ignored(self, fresh_tree):
        fresh_tree.insert(_node("X", "9905", "N11"))
        assert child_suffixes(fresh_tree, "N11") == []
        assert next_child_code(fresh_tree, "N11") == "1101"

    def test_skips_code_used_elsewhere(self, fresh_tree):
        # "1101" exists, but hangs under the root instead of "11"
        fresh_tree.insert(_node("STRAY", "1101", "R1"))
        assert next_child_code(fresh_tree, "N11") == "1102"

    def test_root_level_parent_uses_its_own_code(self, fresh_tree):
        # "11" is suffix 1 of the root, so the next child of "1" is "12"
        assert next_child_code(fresh_tree, "R1", width=1) == "12"

    def test_missing_parent(self, fresh_tree):
        with pytest.raises(ParentAccountNotFoundError):
            next_child_code(fresh_tree, None)
        with pytest.raises(ParentAccountNotFoundError):
            next_child_code(fresh_tree, "nope")
