"""Tests for recordspine.core.statement."""

from recordspine.core.statement import Condition, StatementState
from tests._support.records import Person, Post, Tag, User


class TestFluentAccumulation:
    def test_select_is_comma_joined(self) -> None:
        state = StatementState()
        state.add_select("id")
        state.add_select("name", "age")
        assert state.select == "SELECT id,name,age"

    def test_group_by(self) -> None:
        state = StatementState()
        state.add_group_by("age")
        state.add_group_by("active")
        assert state.group_by == " GROUP BY age,active"

    def test_order_by_default_direction(self) -> None:
        state = StatementState()
        state.add_order_by("name")
        state.add_order_by("age", "DESC")
        assert state.order_by == " ORDER BY name ASC,age DESC"

    def test_limit_and_offset_last_call_wins(self) -> None:
        state = StatementState()
        state.set_limit(5)
        state.set_limit(10)
        state.set_offset(20)
        assert state.limit == " LIMIT 10"
        assert state.offset == " OFFSET 20"

    def test_conditions_are_append_only(self) -> None:
        state = StatementState()
        state.add_condition("name", "=", "ada")
        state.add_condition("name", "=", "bob")
        assert state.conditions == [
            Condition("name", "=", "ada"),
            Condition("name", "=", "bob"),
        ]

    def test_having_kept_apart_from_where(self) -> None:
        state = StatementState()
        state.add_having("COUNT(*)", ">", 1)
        assert state.conditions == []
        assert state.having_conditions == [Condition("COUNT(*)", ">", 1)]


class TestRelationRegistry:
    def test_registration_order_is_kept(self) -> None:
        state = StatementState()
        state.add_relation(Person, "author_id")
        state.add_relation(Tag, "tags")
        assert list(state.relations) == ["author_id", "tags"]

    def test_re_registering_replaces_in_place(self) -> None:
        state = StatementState()
        state.add_relation(Person, "author_id")
        state.add_relation(Tag, "tags")
        state.add_relation(User, "author_id")

        assert list(state.relations) == ["author_id", "tags"]
        assert state.relations["author_id"].target is User
        assert state.relations["author_id"].related_type is User


class TestBinding:
    def test_unbound_by_default(self) -> None:
        assert not StatementState().bound

    def test_first_binding_fixes_primary_table(self) -> None:
        state = StatementState()
        state.bind(Post)
        entity = state.bind(Person)

        assert entity.table == "people"
        assert state.table == "posts"
        assert state.model is Post
        assert state.bound
