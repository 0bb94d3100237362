"""Tests for recordspine.core.schema."""

from dataclasses import dataclass, field

import pytest

from recordspine.core.errors import ConfigError, NotAStructError
from recordspine.core.schema import FieldKind, describe, record_type
from tests._support.records import LogLine, Person, Post, Tag, User, Widget


@dataclass
class Sample:
    id: int | None = None
    payload: bytes = b""
    ratio: float | None = None
    meta: dict = field(default_factory=dict)
    either: int | str = 0
    _private: str = ""


@dataclass
class Keyed:
    __primary_key__ = "code"

    code: str = ""
    name: str = ""


@dataclass
class Flagged:
    key: int = field(default=0, metadata={"primary_key": True})
    id: int = 0


@dataclass
class Dangling:
    id: int | None = None
    ref: "DoesNotExist | None" = None  # noqa: F821


class TestDescribe:
    def test_table_from_type_name(self) -> None:
        assert describe(User).table == "users"
        assert describe(LogLine).table == "log_lines"

    def test_tablename_override(self) -> None:
        assert describe(Person).table == "people"

    def test_instance_and_type_share_descriptor(self) -> None:
        assert describe(User(name="ada")) is describe(User)

    def test_columns_are_qualified_in_field_order(self) -> None:
        assert describe(Post).columns() == ["posts.id", "posts.title", "posts.author_id"]
        assert describe(Post).columns(qualified=False) == ["id", "title", "author_id"]

    def test_values_parallel_to_columns(self) -> None:
        entity = describe(Widget)
        widget = Widget(id="42", label="gear", weight=1.5)
        assert entity.values(widget) == ["42", "gear", 1.5, None, None]
        assert len(entity.values(widget)) == len(entity.columns())

    def test_type_maps_to_none_values(self) -> None:
        assert describe(Tag).values(Tag) == [None, None, None]

    def test_not_a_struct(self) -> None:
        with pytest.raises(NotAStructError):
            describe(5)
        with pytest.raises(NotAStructError):
            describe(dict)

    def test_unresolvable_annotation(self) -> None:
        with pytest.raises(ConfigError):
            describe(Dangling)

    def test_record_type(self) -> None:
        assert record_type(User()) is User
        assert record_type(User) is User


class TestFieldKinds:
    def test_scalars(self) -> None:
        entity = describe(User)
        assert entity.field("id").kind is FieldKind.INT
        assert entity.field("id").optional is True
        assert entity.field("name").kind is FieldKind.STRING
        assert entity.field("active").kind is FieldKind.BOOL
        assert entity.field("score").kind is FieldKind.FLOAT

    def test_bytes_and_unsupported(self) -> None:
        entity = describe(Sample)
        assert entity.field("payload").kind is FieldKind.BYTES
        assert entity.field("ratio").kind is FieldKind.FLOAT
        assert entity.field("meta").kind is FieldKind.UNSUPPORTED
        assert entity.field("either").kind is FieldKind.UNSUPPORTED

    def test_private_fields_are_skipped(self) -> None:
        with pytest.raises(KeyError):
            describe(Sample).field("_private")

    def test_relation_and_collection(self) -> None:
        entity = describe(Post)
        author = entity.field("author")
        tags = entity.field("tags")

        assert author.kind is FieldKind.RELATION
        assert author.related is Person
        assert author.optional is True
        assert tags.kind is FieldKind.COLLECTION
        assert tags.related is Tag
        assert tags.is_json_aggregate
        assert tags.json_key == "slug"
        assert [f.name for f in entity.relation_fields] == ["author", "tags"]


class TestPrimaryKey:
    def test_id_by_convention(self) -> None:
        entity = describe(User)
        assert entity.primary_key.name == "id"
        assert entity.pk_column == "users.id"

    def test_class_attribute(self) -> None:
        assert describe(Keyed).pk_column == "keyeds.code"

    def test_field_metadata_wins(self) -> None:
        assert describe(Flagged).primary_key.name == "key"

    def test_none(self) -> None:
        entity = describe(LogLine)
        assert entity.primary_key is None
        assert entity.pk_column is None
        assert entity.primary_key_value(LogLine()) is None

    def test_primary_key_value(self) -> None:
        assert describe(Widget).primary_key_value(Widget(id="42")) == "42"
        assert describe(Widget).primary_key_value(Widget) is None
