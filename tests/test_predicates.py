import pytest

from hybrid_rag.pipeline.predicates import (
    CONTAINS_OP,
    Predicate,
    build_sql_preview,
    parse_predicate,
)


class TestParsePredicate:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("calories > 500", Predicate("calories", ">", 500)),
            ("prep_time < 15", Predicate("prep_time", "<", 15)),
            ("calories>=400", Predicate("calories", ">=", 400)),
            ("score <= 0.5", Predicate("score", "<=", 0.5)),
            ("category @> ARRAY['snack']", Predicate("category", CONTAINS_OP, "snack")),
        ],
    )
    def test_grammar(self, text, expected):
        assert parse_predicate(text) == expected

    @pytest.mark.parametrize(
        "text",
        [
            "calories > 500; DROP TABLE recipes",
            "calories > abc",
            "category @> ARRAY['a'] OR 1=1",
            "",
        ],
    )
    def test_rejects_anything_else(self, text):
        with pytest.raises(ValueError):
            parse_predicate(text)

    def test_direction(self):
        assert parse_predicate("calories < 300").direction == "upper"
        assert parse_predicate("calories > 300").direction == "lower"
        assert parse_predicate("calories = 300").direction is None
        assert parse_predicate("category @> ARRAY['x']").direction is None


def test_sql_preview():
    assert build_sql_preview([]) == "None"
    assert build_sql_preview(["prep_time < 15", "calories > 500"]) == "prep_time < 15 AND calories > 500"
