"""Tests for label collection."""

from smdis.smdis_labels import LabelSet, collect_labels
from smdis.smdis_opcodes import Opcode


class TestLabelSet:
    """Test the LabelSet bit set."""

    def test_mark_within_bounds(self):
        """Test offsets 0..length inclusive are accepted."""
        labels = LabelSet(10)

        assert labels.mark(0) is True
        assert labels.mark(10) is True
        assert 0 in labels
        assert 10 in labels
        assert list(labels) == [0, 10]
        assert len(labels) == 2

    def test_mark_out_of_bounds_is_ignored(self):
        """Test negative and past-the-end offsets are rejected."""
        labels = LabelSet(10)

        assert labels.mark(-1) is False
        assert labels.mark(11) is False
        assert len(labels) == 0
        assert 11 not in labels
        assert -1 not in labels

    def test_non_integer_membership(self):
        """Test membership of non-integers is always false."""
        labels = LabelSet(4)
        labels.mark(1)

        assert "1" not in labels


class TestCollectLabels:
    """Test the label pass over a unit."""

    def test_jump_targets_marked(self, builder, table):
        """Test forward and backward jump targets are marked."""
        builder.op(Opcode.NOP)
        builder.jump_to(Opcode.GOTO, 7)
        builder.op(Opcode.NOP)
        builder.jump_to(Opcode.IFNE, 0)
        unit = builder.build()

        labels = collect_labels(unit, table)

        assert list(labels) == [0, 7]

    def test_target_at_end_is_marked(self, builder, table):
        """Test a jump to exactly the unit length is a valid label."""
        builder.jump_to(Opcode.GOTO, 6)
        builder.op(Opcode.RETURN)
        unit = builder.build()

        assert 6 in collect_labels(unit, table)

    def test_out_of_range_targets_never_marked(self, builder, table):
        """Test targets outside [0, length] are dropped."""
        builder.op(Opcode.GOTO, 1000)
        builder.op(Opcode.GOTO, -1000)
        unit = builder.build()

        assert len(collect_labels(unit, table)) == 0

    def test_switch_targets_marked(self, builder, table):
        """Test default and case targets are marked."""
        builder.op(Opcode.TABLESWITCH, 22, 0, 1, 21, 21)
        builder.op(Opcode.NOP)
        builder.op(Opcode.RETURN)
        unit = builder.build()

        assert list(collect_labels(unit, table)) == [21, 22]

    def test_empty_switch_has_no_case_targets(self, builder, table):
        """Test high < low only marks the default target."""
        builder.op(Opcode.TABLESWITCH, 13, 3, 1)
        builder.op(Opcode.RETURN)
        unit = builder.build()

        assert list(collect_labels(unit, table)) == [13]

    def test_stops_at_corruption(self, builder, table):
        """Test labels found before corrupt bytes are kept."""
        builder.jump_to(Opcode.GOTO, 5)
        builder.code.append(2)
        builder.jump_to(Opcode.GOTO, 0)
        unit = builder.build()

        assert list(collect_labels(unit, table)) == [5]

    def test_analysis_is_pure(self, builder, table):
        """Test repeated analysis gives the same result."""
        builder.jump_to(Opcode.GOTO, 5)
        builder.op(Opcode.RETURN)
        unit = builder.build()

        assert list(collect_labels(unit, table)) == list(collect_labels(unit, table))
