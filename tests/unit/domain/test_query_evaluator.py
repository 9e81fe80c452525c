import math
import re

import pytest

from dispatch_core.common.exceptions import InvalidQueryError
from dispatch_core.domain.query_evaluator import (
    evaluate_aggregation,
    evaluate_expr,
    get_field,
    match_query,
)

ALICE = {
    "id": "1",
    "name": "alice",
    "authority": 3,
    "flag": 0b0101,
    "tags": ["admin", "ops"],
    "profile": {"lang": "en"},
}


class TestMatchQuery:
    @pytest.mark.parametrize(
        "query",
        [
            {"name": "alice"},
            {"name": ["bob", "alice"]},
            {"name": re.compile("^al")},
            {"authority": {"$gte": 3, "$lt": 4}},
            {"authority": {"$ne": 1}},
            {"name": {"$in": ["alice"]}},
            {"name": {"$nin": ["bob"]}},
            {"name": {"$regex": "ic"}},
            {"name": {"$regexFor": "alice smith"}},
            {"tags": {"$el": "ops"}},
            {"tags": {"$el": {"$regex": "^adm"}}},
            {"tags": {"$size": 2}},
            {"flag": {"$bitsAllSet": 0b0001}},
            {"flag": {"$bitsAllClear": 0b1010}},
            {"flag": {"$bitsAnySet": 0b0110}},
            {"flag": {"$bitsAnyClear": 0b0111}},
            {"profile.lang": "en"},
            {"$or": [{"name": "bob"}, {"authority": 3}]},
            {"$and": [{"name": "alice"}, {"authority": 3}]},
            {"$not": {"name": "bob"}},
            {"$expr": {"$gt": ["authority", 2]}},
            {"$expr": {"$eq": [{"$add": ["authority", 1]}, 4]}},
            {},
        ],
    )
    def test_matching_queries(self, query: dict) -> None:
        assert match_query(query, ALICE) is True

    @pytest.mark.parametrize(
        "query",
        [
            {"name": "bob"},
            {"authority": {"$gt": 3}},
            {"missing": {"$gt": 0}},
            {"tags": {"$size": 3}},
            {"flag": {"$bitsAllSet": 0b0010}},
            {"$or": [{"name": "bob"}, {"authority": 1}]},
            {"$not": {"name": "alice"}},
            {"$expr": {"$lt": [{"$multiply": ["authority", 2]}, 6]}},
        ],
    )
    def test_rejecting_queries(self, query: dict) -> None:
        assert match_query(query, ALICE) is False

    def test_unknown_operators_are_rejected(self) -> None:
        with pytest.raises(InvalidQueryError):
            match_query({"name": {"$like": "a%"}}, ALICE)
        with pytest.raises(InvalidQueryError):
            match_query({"$nor": []}, ALICE)


class TestEvaluateExpr:
    def test_field_references_and_literals(self) -> None:
        assert evaluate_expr("authority", ALICE) == 3
        assert evaluate_expr(2.5, ALICE) == 2.5
        assert get_field(ALICE, "profile.missing") is None

    def test_arithmetic(self) -> None:
        assert evaluate_expr({"$subtract": ["authority", 1]}, ALICE) == 2
        assert evaluate_expr({"$divide": ["authority", 2]}, ALICE) == 1.5

    def test_binary_operators_require_two_operands(self) -> None:
        with pytest.raises(InvalidQueryError):
            evaluate_expr({"$subtract": [1, 2, 3]}, ALICE)

    def test_aggregation_needs_a_record_set(self) -> None:
        with pytest.raises(InvalidQueryError):
            evaluate_expr({"$sum": "authority"}, ALICE)


class TestEvaluateAggregation:
    ROWS = [{"value": 1, "kind": "a"}, {"value": 4, "kind": "b"}, {"value": 4, "kind": "a"}]

    def test_aggregations(self) -> None:
        assert evaluate_aggregation({"$sum": "value"}, self.ROWS) == 9
        assert evaluate_aggregation({"$avg": "value"}, self.ROWS) == 3
        assert evaluate_aggregation({"$max": "value"}, self.ROWS) == 4
        assert evaluate_aggregation({"$min": "value"}, self.ROWS) == 1
        assert evaluate_aggregation({"$count": "kind"}, self.ROWS) == 2

    def test_expressions_over_aggregations(self) -> None:
        expr = {"$add": [{"$sum": "value"}, {"$multiply": [{"$count": "value"}, 10]}]}

        assert evaluate_aggregation(expr, self.ROWS) == 29

    def test_aggregating_an_expression(self) -> None:
        assert evaluate_aggregation({"$sum": {"$multiply": ["value", 2]}}, self.ROWS) == 18

    def test_empty_record_set(self) -> None:
        assert evaluate_aggregation({"$sum": "value"}, []) == 0
        assert evaluate_aggregation({"$count": "value"}, []) == 0
        assert evaluate_aggregation({"$avg": "value"}, []) is None
        assert evaluate_aggregation({"$max": "value"}, []) is None

    def test_missing_values_are_skipped(self) -> None:
        rows = [{"value": 3}, {"value": None}, {}]

        assert evaluate_aggregation({"$sum": "value"}, rows) == 3
        assert evaluate_aggregation({"$avg": "value"}, rows) == 3
        assert evaluate_aggregation({"$max": "value"}, rows) == 3
        assert evaluate_aggregation({"$min": "value"}, [{"value": None}]) is None
        assert evaluate_aggregation({"$sum": "value"}, [{}]) == 0


class TestMissingOperands:
    def test_arithmetic_over_missing_field_is_none(self) -> None:
        assert evaluate_expr({"$add": ["authority", "missing"]}, ALICE) is None
        assert evaluate_expr({"$divide": ["missing", 2]}, ALICE) is None

    def test_comparison_against_missing_result_does_not_match(self) -> None:
        shifted = {"$add": ["missing", 1]}

        assert match_query({"$expr": {"$gt": [shifted, 0]}}, ALICE) is False
        assert match_query({"$expr": {"$lt": [shifted, 0]}}, ALICE) is False


class TestDivisionByZero:
    @pytest.mark.parametrize(
        ("dividend", "expected"),
        [(1, math.inf), (-2, -math.inf)],
    )
    def test_nonzero_over_zero_is_infinite(self, dividend: int, expected: float) -> None:
        assert evaluate_expr({"$divide": [dividend, 0]}, ALICE) == expected

    def test_zero_over_zero_is_nan(self) -> None:
        result = evaluate_expr({"$divide": ["flag", {"$subtract": [1, 1]}]}, {"flag": 0})

        assert math.isnan(result)

    def test_query_with_zero_divisor_keeps_scanning(self) -> None:
        query = {"$expr": {"$gt": [{"$divide": ["flag", "authority"]}, 1]}}

        assert match_query(query, {"flag": 5, "authority": 0}) is True
        assert match_query(query, {"flag": 0, "authority": 0}) is False
        assert match_query(query, {"flag": 5, "authority": 5}) is False
