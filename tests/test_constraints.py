"""Tests for check-constraint parsing, narrowing and repair."""

import pytest

from relsynth.generator.constraints import (
    RangeBound,
    RelationalConstraint,
    apply_range_bounds,
    fix_relational_constraints,
    normalize_expression,
    parse_check_constraint,
    parse_table_checks,
    split_by_and,
    validate_relational_constraints,
)


class TestParseCheckConstraint:

    def test_range_clauses(self):
        parsed = parse_check_constraint("quantity >= 1 AND quantity <= 90")
        bound = parsed.ranges["quantity"]
        assert (bound.min, bound.max) == (1, 90)
        assert bound.min_inclusive and bound.max_inclusive
        assert parsed.relational == []

    def test_exclusive_bounds(self):
        bound = parse_check_constraint("price > 0 AND price < 100").ranges["price"]
        assert not bound.min_inclusive and not bound.max_inclusive
        assert (bound.effective_min, bound.effective_max) == (1, 99)

    def test_equality_pins_both_bounds(self):
        bound = parse_check_constraint("version = 3").ranges["version"]
        assert (bound.min, bound.max) == (3, 3)

    def test_tightest_bound_wins(self):
        bound = parse_check_constraint("qty >= 1 AND qty >= 5 AND qty <= 50 AND qty <= 20").ranges["qty"]
        assert (bound.min, bound.max) == (5, 20)

    def test_relational_clause(self):
        parsed = parse_check_constraint("reserved <= on_hand")
        assert parsed.relational == [RelationalConstraint("reserved", "<=", "on_hand")]
        assert parsed.ranges == {}

    def test_not_equal_spellings(self):
        parsed = parse_check_constraint("a <> b AND c != d")
        assert [c.operator for c in parsed.relational] == ["!=", "!="]

    def test_postgres_casts_and_parentheses(self):
        parsed = parse_check_constraint("(((price)::numeric > (0)::numeric))")
        assert parsed.ranges["price"].min == 0
        assert not parsed.ranges["price"].min_inclusive

    def test_parenthesized_conjuncts(self):
        parsed = parse_check_constraint("((qty >= 0) AND (reserved <= qty))")
        assert parsed.ranges["qty"].min == 0
        assert str(parsed.relational[0]) == "reserved <= qty"

    def test_between(self):
        bound = parse_check_constraint("score BETWEEN 0 AND 10").ranges["score"]
        assert (bound.min, bound.max) == (0, 10)

    def test_or_clause_skipped(self):
        parsed = parse_check_constraint("status = 1 OR status = 2")
        assert parsed.ranges == {}
        assert parsed.relational == []

    def test_or_inside_conjunct_skipped_rest_kept(self):
        parsed = parse_check_constraint("(a > 0 OR b > 0) AND c <= 10")
        assert list(parsed.ranges) == ["c"]

    def test_function_call_skipped(self):
        parsed = parse_check_constraint("char_length(name) > 0")
        assert parsed.ranges == {}

    def test_table_checks_merge(self):
        parsed = parse_table_checks(["qty >= 1", "qty <= 90", "reserved <= on_hand"])
        assert (parsed.ranges["qty"].min, parsed.ranges["qty"].max) == (1, 90)
        assert len(parsed.relational) == 1


class TestExpressionHelpers:

    def test_split_respects_depth(self):
        assert split_by_and("a > 0 AND (b > 0 AND c > 0)") == ["a > 0", "(b > 0 AND c > 0)"]

    def test_split_case_insensitive(self):
        assert split_by_and("a > 0 and b > 0") == ["a > 0", "b > 0"]

    def test_normalize_keeps_inner_groups(self):
        assert normalize_expression("(a > 0) AND (b > 0)") == "(a > 0) AND (b > 0)"


class TestApplyRangeBounds:

    def test_no_bound_keeps_default(self):
        assert apply_range_bounds(None, 1, 1000) == (1, 1000)

    def test_narrows_inside_band(self):
        bound = RangeBound("qty", min=1, max=90)
        assert apply_range_bounds(bound, 1, 100_000) == (1, 90)

    def test_exclusive_converted(self):
        bound = RangeBound("qty", min=0, max=10, min_inclusive=False, max_inclusive=False)
        assert apply_range_bounds(bound, 0, 1000) == (1, 9)

    def test_exclusive_with_fractional_step(self):
        bound = RangeBound("rate", min=0, max=1, min_inclusive=False, max_inclusive=False)
        assert apply_range_bounds(bound, 0, 10_000, step=0.01) == (0.01, 0.99)

    def test_contains_honors_inclusivity(self):
        bound = RangeBound("rate", min=0, max=1, min_inclusive=False)
        assert not bound.contains(0)
        assert bound.contains(0.5)
        assert bound.contains(1)
        assert not bound.contains(1.01)

    def test_one_sided(self):
        bound = RangeBound("qty", min=500)
        assert apply_range_bounds(bound, 1, 1000) == (500, 1000)

    def test_bound_outside_band_uses_constraint(self):
        bound = RangeBound("year", min=1900, max=2100)
        assert apply_range_bounds(bound, 1, 1000) == (1900, 2100)

    def test_open_side_keeps_band_width(self):
        bound = RangeBound("qty", min=5000)
        assert apply_range_bounds(bound, 1, 1000) == (5000, 5999)

    def test_contradiction_collapses(self):
        bound = RangeBound("qty", min=10, max=5)
        assert apply_range_bounds(bound, 1, 1000) == (10, 10)


class TestRelationalRepair:

    def setup_method(self):
        self.le = RelationalConstraint("reserved", "<=", "on_hand")

    def test_validate_reports_violation(self):
        row = {"reserved": 10, "on_hand": 3}
        assert validate_relational_constraints(row, [self.le]) == [self.le]

    def test_validate_skips_non_numeric(self):
        assert validate_relational_constraints({"reserved": None, "on_hand": 3}, [self.le]) == []
        assert validate_relational_constraints({"reserved": "x", "on_hand": 3}, [self.le]) == []
        assert validate_relational_constraints({"on_hand": 3}, [self.le]) == []

    def test_validate_skips_booleans(self):
        assert validate_relational_constraints({"reserved": True, "on_hand": 0}, [self.le]) == []

    @pytest.mark.parametrize(
        "op,left,right,expected",
        [
            ("<=", 10, 3, 3),
            (">=", 1, 3, 3),
            ("<", 10, 3, 2),
            ("<", 10, 0, 0),
            (">", 1, 3, 4),
        ],
    )
    def test_fix_adjusts_left(self, op, left, right, expected):
        constraint = RelationalConstraint("a", op, "b")
        row = {"a": left, "b": right}
        assert fix_relational_constraints(row, [constraint]) == []
        assert row == {"a": expected, "b": right}

    def test_fix_leaves_satisfied_rows(self):
        row = {"reserved": 1, "on_hand": 3}
        fix_relational_constraints(row, [self.le])
        assert row == {"reserved": 1, "on_hand": 3}

    def test_equality_not_repaired(self):
        eq = RelationalConstraint("a", "=", "b")
        row = {"a": 1, "b": 2}
        assert fix_relational_constraints(row, [eq]) == [eq]
        assert row == {"a": 1, "b": 2}

    def test_repaired_row_validates(self):
        row = {"reserved": 50, "on_hand": 7}
        fix_relational_constraints(row, [self.le])
        assert validate_relational_constraints(row, [self.le]) == []
