"""Tests for scanning and rewriting of bind placeholders."""

import pytest
from sqlscaffold import placeholders
from sqlscaffold.errors import InvalidArgument


class TestScan:
    def test_positional(self):
        sql = "SELECT * FROM customers WHERE customer_id = ? AND status = ?"
        found = placeholders.positional(sql)
        assert [placeholder.position for placeholder in found] == [sql.index("?"), sql.rindex("?")]

    @pytest.mark.parametrize(
        "sql,count",
        [
            ("SELECT * FROM customers WHERE description LIKE '%What?%' AND id = ?", 1),
            ('SELECT "what?" FROM t WHERE a = ?', 1),
            ("SELECT [what?] FROM t WHERE a = ?", 1),
            ("SELECT a FROM t -- is it?\nWHERE a = ? /* or ? */ AND b = ?", 2),
            ("SELECT a FROM t WHERE tags ?| array['x'] AND b = ?", 1),
            ("SELECT a FROM t WHERE a = 'it''s?' AND b = ?", 1),
            ("SELECT 1", 0),
        ],
    )
    def test_ignores_literals_and_comments(self, sql, count):
        assert placeholders.count_positional(sql) == count

    def test_named(self):
        found = placeholders.scan("SELECT * FROM t WHERE a = :first AND b::date = ? AND c = :second")
        assert [placeholder.name for placeholder in found] == ["first", None, "second"]


class TestRewrite:
    def test_to_named(self):
        sql = "SELECT * FROM customers WHERE customer_id = ? AND status = ?"
        assert (
            placeholders.to_named(sql, ["customerId", "status"])
            == "SELECT * FROM customers WHERE customer_id = :customerId AND status = :status"
        )

    def test_to_named_keeps_literals(self):
        sql = "SELECT * FROM customers WHERE description LIKE '%What?%' AND id = ?"
        assert placeholders.to_named(sql, ["id"]) == (
            "SELECT * FROM customers WHERE description LIKE '%What?%' AND id = :id"
        )

    def test_count_mismatch(self):
        with pytest.raises(
            InvalidArgument, match="Parameter count mismatch: SQL has 2 placeholders but 1 parameters provided"
        ):
            placeholders.to_named("SELECT * FROM t WHERE a = ? AND b = ?", ["a"])

    def test_to_positional(self):
        sql, names = placeholders.to_positional("UPDATE t SET price = :price WHERE price = :price2 AND x::int = 1")
        assert sql == "UPDATE t SET price = ? WHERE price = ? AND x::int = 1"
        assert names == ["price", "price2"]

    def test_round_trip(self):
        """Test named placeholders map back to the same number and order of positions."""
        sql = "SELECT * FROM t WHERE a = ? AND b > ? AND c < ?"
        names = ["a", "b", "c"]
        positional_sql, found = placeholders.to_positional(placeholders.to_named(sql, names))
        assert positional_sql == sql
        assert found == names
