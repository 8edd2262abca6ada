"""Tests for the WHERE clause builder."""

import re

import pytest
from conftest import KEY

from cypher_forge.core.errors import AliasError, ClauseError, ParameterError
from cypher_forge.query_builder.clauses.where import And, Bracket, Or, Statement, WhereClauseBuilder, flatten


class TestWhereRendering:

    def test_single_statement(self):
        compiled = WhereClauseBuilder().add("n.age > 30").finalize({"n"})
        assert compiled.query == "WHERE n.age > 30"
        assert compiled.parameters == {}
        assert compiled.aliases == frozenset({"n"})

    def test_empty_builder_renders_nothing(self):
        builder = WhereClauseBuilder()
        assert not builder
        assert builder.finalize({"n"}).query == ""

    def test_nested_bracket(self):
        where = (
            WhereClauseBuilder()
            .add('n.name = "value1"')
            .and_(lambda w: w.add('m.age = "value2"').or_("m.age = 10"))
        )
        assert where.finalize({"n", "m"}).query == 'WHERE n.name = "value1" AND ( m.age = "value2" OR m.age = 10 )'

    def test_prebuilt_builder_becomes_bracket(self):
        inner = WhereClauseBuilder().add("n.a = 1").or_("n.b = 2")
        where = WhereClauseBuilder().add(inner).and_("n.c = 3")
        assert where.finalize({"n"}).query == "WHERE ( n.a = 1 OR n.b = 2 ) AND n.c = 3"

    def test_callable_returning_other_builder(self):
        other = WhereClauseBuilder().add("n.x = 1")
        where = WhereClauseBuilder().add("n.y = 2").or_(lambda _w: other)
        assert where.finalize({"n"}).query == "WHERE n.y = 2 OR ( n.x = 1 )"

    def test_deeply_nested_brackets(self):
        where = WhereClauseBuilder().add(
            lambda w: w.add("n.a = 1").and_(lambda inner: inner.add("n.b = 2").or_("n.c = 3"))
        )
        assert where.finalize({"n"}).query == "WHERE ( n.a = 1 AND ( n.b = 2 OR n.c = 3 ) )"

    def test_connectives_interleave_statements(self):
        where = WhereClauseBuilder().add("n.a = 1").and_("n.b = 2").or_("n.c = 3")
        nodes = where.nodes

        statements = [node for node in nodes if isinstance(node, Statement)]
        connectives = [node for node in nodes if isinstance(node, (And, Or))]
        assert len(connectives) == len(statements) - 1
        assert [type(node) for node in nodes] == [Statement, And, Statement, Or, Statement]

    def test_flatten(self):
        nodes = [Statement("a"), And(), Bracket((Statement("b"), Or(), Statement("c")))]
        assert flatten(nodes) == "a AND ( b OR c )"

    def test_raw_query(self):
        where = WhereClauseBuilder(aliases={"n"}).add("n.name = $name", {"name": "Alice"})
        assert where.to_raw_query() == 'WHERE n.name = "Alice"'
        assert str(where) == where.to_raw_query()


class TestWhereParameters:

    def test_placeholders_are_randomized(self, key_generator):
        compiled = WhereClauseBuilder(key_generator=key_generator).add("n.age > $age", {"age": 30}).finalize({"n"})
        match = re.fullmatch(rf"WHERE n\.age > \$(age_{KEY})", compiled.query)
        assert match
        assert compiled.parameters == {match.group(1): 30}

    def test_same_name_in_two_statements_gets_distinct_keys(self, key_generator):
        compiled = (
            WhereClauseBuilder(key_generator=key_generator)
            .add("n.age > $age", {"age": 30})
            .and_("m.age < $age", {"age": 40})
            .finalize({"n", "m"})
        )
        keys = re.findall(rf"\$(age_{KEY})", compiled.query)
        assert len(keys) == 2 and keys[0] != keys[1]
        assert compiled.parameters == {keys[0]: 30, keys[1]: 40}

    def test_placeholders_inside_brackets_are_collected(self, key_generator):
        compiled = (
            WhereClauseBuilder(key_generator=key_generator)
            .add("n.a = $a", {"a": 1})
            .and_(lambda w: w.add("n.b = $b", {"b": 2}))
            .finalize({"n"})
        )
        assert sorted(compiled.parameters.values()) == [1, 2]

    def test_statement_without_parameters_is_left_untouched(self):
        compiled = WhereClauseBuilder().add("n.age > $age").finalize({"n"})
        assert compiled.query == "WHERE n.age > $age"
        assert compiled.parameters == {}

    def test_missing_parameter(self):
        with pytest.raises(ParameterError):
            WhereClauseBuilder().add("n.age > $age", {"other": 1})

    @pytest.mark.parametrize("value", [0, False, "", None])
    def test_falsy_values_are_accepted(self, value):
        compiled = WhereClauseBuilder().add("n.x = $x", {"x": value}).finalize({"n"})
        assert list(compiled.parameters.values()) == [value]


class TestWhereErrors:

    def test_add_twice(self):
        with pytest.raises(ClauseError):
            WhereClauseBuilder().add("n.a = 1").add("n.b = 2")

    @pytest.mark.parametrize("method", ["and_", "or_"])
    def test_connective_first(self, method):
        with pytest.raises(ClauseError):
            getattr(WhereClauseBuilder(), method)("n.a = 1")

    def test_empty_bracket(self):
        with pytest.raises(ClauseError):
            WhereClauseBuilder().add(lambda w: None)
        with pytest.raises(ClauseError):
            WhereClauseBuilder().add(WhereClauseBuilder())

    def test_unsupported_item(self):
        with pytest.raises(ClauseError):
            WhereClauseBuilder().add(42)


class TestWhereAliasValidation:

    def test_validation_waits_for_finalize(self):
        where = WhereClauseBuilder().add("x.age > 30")

        with pytest.raises(AliasError, match="x"):
            where.finalize({"n"})
        assert where.finalize({"x"}).query == "WHERE x.age > 30"

    def test_nested_statement_is_validated(self):
        where = WhereClauseBuilder().add("n.a = 1").or_(lambda w: w.add("m.b = 2"))
        with pytest.raises(AliasError):
            where.finalize({"n"})

    def test_default_scope(self):
        where = WhereClauseBuilder().add("n.a = 1")
        with pytest.raises(AliasError):
            where.to_parameterized_query()

        where.set_alias_list(["n"])
        assert where.aliases == frozenset({"n"})
        assert where.to_parameterized_query().query == "WHERE n.a = 1"

    def test_literals_and_parameters_are_not_aliases(self):
        where = WhereClauseBuilder().add("n.name = 'x.y' AND n.age > $m", {"m": 1})
        assert where.finalize({"n"}).aliases == frozenset({"n"})
