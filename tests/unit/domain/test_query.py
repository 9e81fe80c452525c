import re

import pytest

from dispatch_core.common.exceptions import ConfigurationError, InvalidQueryError
from dispatch_core.domain.query import resolve_modifier, resolve_query
from dispatch_core.domain.tables import TableRegistry


@pytest.fixture
def tables() -> TableRegistry:
    return TableRegistry()


class TestResolveQuery:
    def test_scalar_shorthand_targets_primary_key(self, tables: TableRegistry) -> None:
        assert resolve_query(tables.get("user"), "abc") == {"id": "abc"}
        assert resolve_query(tables.get("user"), 7) == {"id": 7}

    def test_list_shorthand_is_membership(self, tables: TableRegistry) -> None:
        assert resolve_query(tables.get("user"), ("a", "b")) == {"id": ["a", "b"]}

    def test_pattern_shorthand(self, tables: TableRegistry) -> None:
        pattern = re.compile("^a")

        assert resolve_query(tables.get("user"), pattern) == {"id": pattern}

    def test_mapping_is_returned_unchanged(self, tables: TableRegistry) -> None:
        query = {"authority": {"$gte": 2}}

        assert resolve_query(tables.get("user"), query) is query

    def test_none_matches_everything(self, tables: TableRegistry) -> None:
        assert resolve_query(tables.get("user")) == {}

    def test_shorthand_against_composite_key_fails(self, tables: TableRegistry) -> None:
        with pytest.raises(InvalidQueryError, match="invalid query syntax"):
            resolve_query(tables.get("channel"), "123")

    def test_invalid_query_is_a_configuration_error(self, tables: TableRegistry) -> None:
        with pytest.raises(ConfigurationError):
            resolve_query(tables.get("user"), True)


class TestResolveModifier:
    def test_field_list_shorthand(self) -> None:
        assert resolve_modifier(["id", "name"]) == {"fields": ["id", "name"]}

    def test_mapping_and_none(self) -> None:
        assert resolve_modifier({"limit": 1}) == {"limit": 1}
        assert resolve_modifier() == {}
