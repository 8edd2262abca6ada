"""Tests for the query assembler."""

import re

import pytest
from conftest import KEY, warnings_in

from cypher_forge import QueryBuilder
from cypher_forge.core.config import Settings
from cypher_forge.core.errors import AliasError, ClauseError, ParameterError
from cypher_forge.query_builder.clauses import ReturnClauseBuilder, WhereClauseBuilder
from cypher_forge.query_builder.parameters import ParameterKeyGenerator
from cypher_forge.query_builder.path import PathPatternBuilder
from cypher_forge.query_builder.state import BuilderState


@pytest.fixture
def builder(key_generator):
    return QueryBuilder(key_generator=key_generator)


def match_n(builder: QueryBuilder) -> QueryBuilder:
    return builder.match(lambda p: p.set_node("n"))


class TestBasicQueries:

    def test_basic_match(self):
        builder = QueryBuilder.new().match(lambda p: p.set_node("n")).return_("n")
        assert builder.to_raw_query() == "MATCH (n)\nRETURN n"

    def test_simple_where(self, builder):
        match_n(builder).where(lambda w: w.add('n.name = "value"')).return_("n")
        assert builder.to_raw_query() == 'MATCH (n)\nWHERE n.name = "value"\nRETURN n'

    def test_multiple_where_statements(self, builder):
        match_n(builder).where(lambda w: w.add('n.name = "value"').and_("n.age = 10")).return_("n")
        assert builder.to_raw_query() == 'MATCH (n)\nWHERE n.name = "value" AND n.age = 10\nRETURN n'

    def test_where_statement_with_parameters(self, builder):
        compiled = match_n(builder).where("n.age > $age", {"age": 30}).return_("n").to_parameterized_query()
        match = re.fullmatch(rf"MATCH \(n\)\nWHERE n\.age > \$(age_{KEY})\nRETURN n", compiled.query)
        assert match
        assert compiled.parameters == {match.group(1): 30}

    def test_prebuilt_where(self, builder):
        where = WhereClauseBuilder().add("n.age > 30")
        assert "WHERE n.age > 30" in match_n(builder).where(where).return_("n").to_raw_query()

    def test_order_by(self, builder):
        match_n(builder).order_by("n.name", "ASC").return_("n")
        assert builder.to_raw_query() == "MATCH (n)\nORDER BY n.name ASC\nRETURN n"

    def test_order_by_with_add(self, builder):
        match_n(builder).order_by("n.name").add_order_by("n.age", "DESC").return_("n")
        assert builder.to_raw_query() == "MATCH (n)\nORDER BY n.name ASC, n.age DESC\nRETURN n"

    def test_add_order_by_without_order_by(self, builder):
        match_n(builder).add_order_by("n.name", "ASC").add_order_by("n.age", "DESC").return_("n")
        assert builder.to_raw_query() == "MATCH (n)\nORDER BY n.name ASC, n.age DESC\nRETURN n"

    def test_order_by_callable(self, builder):
        match_n(builder).order_by(lambda o: o.add("n.name").add("n.age", "DESC"))
        assert builder.to_raw_query() == "MATCH (n)\nORDER BY n.name ASC, n.age DESC"

    def test_skip_limit_offset(self, builder):
        match_n(builder).skip(10).limit(5).offset(2).return_("n")
        assert builder.to_raw_query() == "MATCH (n)\nSKIP 10\nLIMIT 5\nOFFSET 2\nRETURN n"

    def test_chained_match_patterns(self, builder):
        builder.match(
            lambda p: p.set_node("n").to_relationship("r", "KNOWS").to_node("m"),
            lambda p: p.set_node("k"),
        ).return_(["n", "r", "m", "k"])
        assert builder.to_raw_query() == "MATCH (n)-[r:KNOWS]->(m), (k)\nRETURN n, r, m, k"

    def test_callback_without_return_value(self, builder):
        def pattern(p: PathPatternBuilder) -> None:
            p.set_node("n")

        builder.match(pattern).return_("n")
        assert builder.to_raw_query() == "MATCH (n)\nRETURN n"

    def test_return_with_alias(self, builder):
        match_n(builder).return_("n.name", alias="name").add_return("n.age")
        assert builder.to_raw_query() == "MATCH (n)\nRETURN n.name AS name, n.age"

    def test_return_builder_and_callable(self, builder):
        match_n(builder).return_(lambda r: r.add("n").distinct())
        assert builder.to_raw_query() == "MATCH (n)\nRETURN DISTINCT n"

        other = match_n(QueryBuilder()).return_(ReturnClauseBuilder().add("*"))
        assert other.to_raw_query() == "MATCH (n)\nRETURN *"

    def test_finish(self, builder):
        builder.create(lambda p: p.set_node("n", ["Person"], {"name": "Alice"})).finish()
        assert builder.to_raw_query() == 'CREATE (n:Person {name: "Alice"})\nFINISH'


class TestAssembly:

    def test_clauses_are_emitted_in_fixed_order(self, builder):
        (
            builder.return_("n")
            .limit(5)
            .set("n.seen = true")
            .order_by("n.name")
            .where("n.age > 1")
            .create(lambda p: p.set_node("c"))
            .merge(lambda p: p.set_node("g"))
            .optional_match(lambda p: p.set_node("o"))
            .match(lambda p: p.set_node("n"))
            .skip(1)
            .offset(2)
        )
        keywords = [line.split(" ")[0] for line in builder.to_raw_query().split("\n")]
        assert keywords == [
            "MATCH",
            "OPTIONAL",
            "MERGE",
            "CREATE",
            "WHERE",
            "SET",
            "ORDER",
            "SKIP",
            "LIMIT",
            "OFFSET",
            "RETURN",
        ]

    def test_scope_is_union_of_selective_clauses(self, builder):
        (
            builder.match(lambda p: p.set_node("n"))
            .optional_match(lambda p: p.set_node("n").to_relationship("r").to_node("m"))
            .where("m.age > 1 AND n.age > 2")
            .return_(["n", "m", "r"])
        )
        compiled = builder.to_parameterized_query()
        assert compiled.aliases == frozenset({"n", "m", "r"})

    def test_alias_not_in_scope(self, builder):
        match_n(builder).where(lambda w: w.add("m.name = 'x'"))
        with pytest.raises(AliasError, match="m"):
            builder.to_parameterized_query()

    @pytest.mark.parametrize("statement", ["m IS NULL", "size(m) > 2", "m:Person", "n.a = 1 AND NOT exists(m.b)"])
    def test_bare_and_wrapped_aliases_are_validated(self, builder, statement):
        match_n(builder).where(statement)
        with pytest.raises(AliasError, match="m"):
            builder.to_parameterized_query()

    def test_function_arguments_in_return_are_validated(self, builder):
        match_n(builder).return_("count(m)", alias="total")
        with pytest.raises(AliasError, match="m"):
            builder.to_parameterized_query()

    def test_alias_from_raw_pattern(self, builder):
        builder.match("(a:Person)-[:KNOWS]->(b)").return_("b.name")
        assert builder.to_raw_query() == "MATCH (a:Person)-[:KNOWS]->(b)\nRETURN b.name"

    def test_cross_clause_alias_reuse(self, builder):
        match_n(builder).merge(lambda p: p.set_node("n").to_relationship("r", "TAGGED").to_node("t")).return_("t")
        assert builder.to_raw_query() == "MATCH (n)\nMERGE (n)-[r:TAGGED]->(t)\nRETURN t"

    def test_match_replaces_and_add_match_extends(self, builder):
        builder.match(lambda p: p.set_node("a")).match(lambda p: p.set_node("b"))
        assert builder.to_raw_query() == "MATCH (b)"

        builder.add_match(lambda p: p.set_node("c"))
        assert builder.to_raw_query() == "MATCH (b), (c)"

    @pytest.mark.parametrize("method", ["create", "merge", "optional_match"])
    def test_add_variants(self, method):
        builder = QueryBuilder()
        getattr(builder, f"add_{method}")(lambda p: p.set_node("a"))
        getattr(builder, f"add_{method}")(lambda p: p.set_node("b"))
        assert builder.to_raw_query().endswith("(a), (b)")

    def test_parameters_merged_across_clauses(self, builder):
        compiled = (
            builder.match(lambda p: p.set_node("n", ["Person"], {"name": "Alice"}))
            .where("n.age > $name", {"name": 30})
            .set("n.name = $name", {"name": "Bob"})
            .return_("n")
            .to_parameterized_query()
        )
        keys = re.findall(r"\$(\w+)", compiled.query)
        assert len(keys) == len(set(keys)) == 3
        assert sorted(compiled.parameters.values(), key=str) == [30, "Alice", "Bob"]

    def test_raw_expressions_are_inlined(self, builder):
        builder.create(lambda p: p.set_node("e", ["Event"], {"at": lambda: "datetime()"}))
        compiled = builder.to_parameterized_query()
        assert compiled.query == "CREATE (e:Event {at: datetime()})"
        assert compiled.parameters == {}

    def test_custom_separator(self, key_generator):
        builder = QueryBuilder(key_generator=key_generator, settings=Settings(clause_separator=" "))
        match_n(builder).return_("n")
        assert builder.to_raw_query() == "MATCH (n) RETURN n"

    def test_seeded_generators_are_deterministic(self):
        def build(seed: int) -> str:
            return (
                QueryBuilder(key_generator=ParameterKeyGenerator(seed=seed))
                .match(lambda p: p.set_node("n", properties={"name": "x"}))
                .where("n.age > $age", {"age": 1})
                .return_("n")
                .to_parameterized_query()
                .query
            )

        assert build(7) == build(7)
        assert build(7) != build(8)

    def test_empty_builder(self):
        compiled = QueryBuilder().to_parameterized_query()
        assert compiled.query == ""
        assert not compiled


class TestClauseRules:

    @pytest.mark.parametrize(
        "first, second",
        [
            (lambda b: b.where("n.a = 1"), lambda b: b.where("n.b = 2")),
            (lambda b: b.where("n.a = 1"), lambda b: b.where_filters({"b": 2})),
            (lambda b: b.order_by("n.name"), lambda b: b.order_by("n.age", "DESC")),
            (lambda b: b.return_("n"), lambda b: b.return_("n")),
            (lambda b: b.set("n.a = 1"), lambda b: b.set("n.b = 2")),
        ],
    )
    def test_singleton_methods(self, builder, first, second):
        first(match_n(builder))
        with pytest.raises(ClauseError):
            second(builder)

    def test_add_variants_are_not_singletons(self, builder):
        match_n(builder).set("n.a = 1").add_set("n.b = 2").return_("n").add_return("n.c")
        assert builder.to_raw_query() == "MATCH (n)\nSET n.a = 1, n.b = 2\nRETURN n, n.c"

    def test_return_and_finish(self, builder):
        match_n(builder).where(lambda w: w.add('n.name = "value"')).finish().return_(["n"])
        with pytest.raises(ClauseError):
            builder.to_raw_query()

    def test_invalid_direction(self, builder):
        with pytest.raises(ClauseError):
            match_n(builder).order_by("n.name", "SIDEWAYS")

    def test_unsupported_return_item(self, builder):
        with pytest.raises(ClauseError):
            builder.return_(42)

    @pytest.mark.parametrize(
        "rejected, accepted",
        [
            (lambda b: b.where("n.a = $a", {"b": 1}), lambda b: b.where("n.a = $a", {"a": 1})),
            (lambda b: b.where_filters({"a__near": 1}), lambda b: b.where_filters({"a": 1})),
            (lambda b: b.order_by("n.name", "SIDEWAYS"), lambda b: b.order_by("n.name", "DESC")),
            (lambda b: b.return_(42), lambda b: b.return_("n")),
            (lambda b: b.set(lambda s: s.set("n.a = 1").set("n.b = 2")), lambda b: b.set("n.a = 1")),
        ],
    )
    def test_rejected_call_leaves_clause_unset(self, builder, rejected, accepted):
        with pytest.raises((ClauseError, ParameterError)):
            rejected(match_n(builder))
        accepted(builder)
        assert builder.to_parameterized_query().query.startswith("MATCH (n)\n")

    def test_set_missing_value(self, builder):
        match_n(builder).set(lambda s: s.set("n.name = $name"))
        with pytest.raises(ParameterError):
            builder.to_parameterized_query()

    def test_set_with_late_values(self, builder):
        match_n(builder).set(lambda s: s.set("n.name = $name").set_properties({"name": "Bob"}))
        assert builder.to_raw_query() == 'MATCH (n)\nSET n.name = "Bob"'


class TestPagination:

    def test_paginate(self, builder):
        match_n(builder).paginate(page=3, page_size=20).return_("n")
        assert builder.to_raw_query() == "MATCH (n)\nSKIP 40\nLIMIT 20\nRETURN n"

    def test_first_page(self, builder):
        match_n(builder).paginate(page=1, page_size=10)
        assert builder.to_raw_query() == "MATCH (n)\nSKIP 0\nLIMIT 10"

    @pytest.mark.parametrize("method", ["skip", "limit", "offset"])
    @pytest.mark.parametrize("count", [-1, 1.5, "3", True])
    def test_invalid_count(self, builder, method, count):
        with pytest.raises(ClauseError):
            getattr(builder, method)(count)

    @pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0)])
    def test_invalid_page(self, builder, page, page_size):
        with pytest.raises(ClauseError):
            builder.paginate(page, page_size)

    def test_last_value_wins(self, builder):
        match_n(builder).limit(5).limit(7)
        assert builder.to_raw_query() == "MATCH (n)\nLIMIT 7"


class TestHelpers:

    def test_match_node(self, builder):
        compiled = builder.match_node("n", "Person", "Admin", name="Alice").return_("n").to_parameterized_query()
        assert re.fullmatch(rf"MATCH \(n:Person:Admin \{{name: \$n_name_{KEY}\}}\)\nRETURN n", compiled.query)
        assert list(compiled.parameters.values()) == ["Alice"]

    def test_count(self, builder):
        match_n(builder).count()
        assert builder.to_raw_query() == "MATCH (n)\nRETURN COUNT(DISTINCT n) AS count"

        plain = match_n(QueryBuilder()).count(distinct=False)
        assert plain.to_raw_query() == "MATCH (n)\nRETURN COUNT(n) AS count"

    def test_return_fields(self, builder):
        match_n(builder).return_fields("n", ["name", "age"])
        assert builder.to_raw_query() == "MATCH (n)\nRETURN n.name AS name, n.age AS age"

    def test_where_filters(self, builder):
        compiled = builder.match_node("p", "Person").where_filters({"age__gte": 18}, alias="p").to_parameterized_query()
        assert re.fullmatch(rf"MATCH \(p:Person\)\nWHERE p\.age >= \$age_{KEY}", compiled.query)


class TestLifecycle:

    def test_state_transitions(self, builder):
        assert builder.state is BuilderState.EMPTY

        match_n(builder)
        assert builder.state is BuilderState.ACCUMULATING

        builder.to_parameterized_query()
        assert builder.state is BuilderState.FINALIZED

    def test_modifying_after_compile_warns(self, builder, log_output):
        match_n(builder).to_parameterized_query()
        builder.return_("n")

        assert builder.to_raw_query() == "MATCH (n)\nRETURN n"
        assert [entry["event"] for entry in warnings_in(log_output)] == [
            "Modifying a query builder that was already compiled"
        ]

    def test_compiling_twice_gives_same_result(self, builder):
        match_n(builder).where("n.a = $a", {"a": 1}).return_("n")
        assert builder.to_parameterized_query() == builder.to_parameterized_query()


class TestLogging:

    def test_assembled_query_is_logged(self, builder, log_output):
        match_n(builder).return_("n").to_parameterized_query()

        (entry,) = [entry for entry in log_output if entry["event"] == "Assembled query"]
        assert entry["log_level"] == "debug"
        assert entry["query"] == "MATCH (n)\nRETURN n"
        assert entry["aliases"] == ["n"]

    def test_failure_is_logged_with_error_context(self, builder, log_output):
        match_n(builder).return_("m")
        with pytest.raises(AliasError):
            builder.to_parameterized_query()

        (entry,) = [entry for entry in log_output if entry["log_level"] == "error"]
        assert entry["error_type"] == "AliasError"
        assert entry["error_code"] == "7002"
        assert entry["details.actual_value"] == "m"
        assert entry["context.function"] == "QueryBuilder.to_parameterized_query"
