"""Tests for relationship analysis."""

import pytest

from modelgen_cli.analysis.conventions import Conventions
from modelgen_cli.analysis.models import (
    InverseCollection,
    ManyToMany,
    OwnerReference,
)
from modelgen_cli.analysis.relationship_analyzer import (
    DANGLING_FOREIGN_KEY,
    JUNCTION_NEAR_MISS,
    RelationshipAnalyzer,
    junction_tables,
)
from modelgen_cli.database.models import ForeignKeyAction, Relation, RelationKind

from .fixtures import FakeCatalogReader, build_owned_teams_catalog, col, fk


def analyze(reader, relation_name, schema="public"):
    analyzer = RelationshipAnalyzer(reader, schema)
    return analyzer.analyze(relation_name, reader.list_relations(schema))


class TestOwnerReferences:
    """Test associations held by the analyzed relation."""

    def test_owner_reference_to_known_relation(self, blog_reader):
        result = analyze(blog_reader, "posts")

        assert result.owner_references == (
            OwnerReference(
                field="user",
                target="users",
                foreign_key="user_id",
                references="id",
                on_update=ForeignKeyAction.NO_ACTION,
                on_delete=ForeignKeyAction.CASCADE,
            ),
        )

    def test_dangling_foreign_key_is_dropped(self):
        """A reference outside the relation set is silently omitted."""
        reader = FakeCatalogReader()
        reader.add_relation(
            "orders",
            columns=[col("id", "integer"), col("customer_id", "integer")],
            primary_key=["id"],
            foreign_keys=[fk("customer_id", "customers")],
        )

        result = analyze(reader, "orders")

        assert result.owner_references == ()
        assert len(result) == 0
        assert [d.code for d in result.diagnostics] == [DANGLING_FOREIGN_KEY]

    def test_same_name_in_other_schema_is_dangling(self):
        """Relations are identified by schema and name."""
        reader = FakeCatalogReader()
        reader.add_relation("users", columns=[col("id", "integer")], primary_key=["id"])
        reader.add_relation(
            "orders",
            columns=[col("id", "integer"), col("user_id", "integer")],
            primary_key=["id"],
            foreign_keys=[fk("user_id", "users", ref_schema="auth")],
        )

        result = analyze(reader, "orders")

        assert result.owner_references == ()

    def test_two_references_to_same_relation(self):
        """The second reference is named after its column."""
        reader = FakeCatalogReader()
        reader.add_relation("users", columns=[col("id", "integer")], primary_key=["id"])
        reader.add_relation(
            "messages",
            columns=[col("id", "integer"), col("sender_id", "integer"), col("recipient_id", "integer")],
            primary_key=["id"],
            foreign_keys=[fk("sender_id", "users"), fk("recipient_id", "users")],
        )

        result = analyze(reader, "messages")

        assert [r.field for r in result.owner_references] == ["user", "recipient"]
        assert [r.foreign_key for r in result.owner_references] == ["sender_id", "recipient_id"]

    def test_non_default_referenced_column(self):
        reader = FakeCatalogReader()
        reader.add_relation("countries", columns=[col("code", "char(2)")], primary_key=["code"])
        reader.add_relation(
            "cities",
            columns=[col("id", "integer"), col("country_code", "char(2)")],
            primary_key=["id"],
            foreign_keys=[fk("country_code", "countries", ref_column="code")],
        )

        result = analyze(reader, "cities")

        assert result.owner_references[0].field == "country"
        assert result.owner_references[0].references == "code"


class TestInverseCollections:
    """Test associations derived from other relations' foreign keys."""

    def test_inverse_collection(self, blog_reader):
        result = analyze(blog_reader, "users")

        assert result.owner_references == ()
        assert result.inverse_collections == (
            InverseCollection(field="posts", target="posts", foreign_key="user_id"),
        )

    def test_inverse_collection_deduplicated_by_table(self):
        reader = FakeCatalogReader()
        reader.add_relation("users", columns=[col("id", "integer")], primary_key=["id"])
        reader.add_relation(
            "messages",
            columns=[col("id", "integer"), col("sender_id", "integer"), col("recipient_id", "integer"),
                     col("body", "text"), col("subject", "text"), col("sent_on", "date")],
            primary_key=["id"],
            foreign_keys=[fk("sender_id", "users"), fk("recipient_id", "users")],
        )

        result = analyze(reader, "users")

        assert len(result.inverse_collections) == 1
        assert result.inverse_collections[0].foreign_key == "sender_id"

    def test_views_do_not_produce_inverse_collections(self):
        reader = FakeCatalogReader()
        reader.add_relation("users", columns=[col("id", "integer")], primary_key=["id"])
        reader.add_relation(
            "active_users",
            columns=[col("user_id", "integer")],
            foreign_keys=[fk("user_id", "users")],
            kind=RelationKind.VIEW,
        )

        result = analyze(reader, "users")

        assert result.inverse_collections == ()

    def test_inverse_singulars_never_populated(self, blog_reader):
        assert analyze(blog_reader, "users").inverse_singulars == ()
        assert analyze(blog_reader, "posts").inverse_singulars == ()


class TestManyToMany:
    """Test junction table detection and many-to-many edges."""

    def test_many_to_many_through_junction(self, teams_reader):
        result = analyze(teams_reader, "users")

        assert result.many_to_many == (
            ManyToMany(
                field="teams",
                target="teams",
                join_through="users_teams",
                join_keys=(("user_id", "id"), ("id", "team_id")),
            ),
        )

    def test_junction_suppresses_inverse_collection(self, teams_reader):
        result = analyze(teams_reader, "users")

        assert result.inverse_collections == ()

    def test_many_to_many_from_other_side(self, teams_reader):
        result = analyze(teams_reader, "teams")

        assert len(result.many_to_many) == 1
        edge = result.many_to_many[0]
        assert edge.target == "users"
        assert edge.join_keys == (("team_id", "id"), ("id", "user_id"))

    def test_junction_has_its_own_owner_references(self, teams_reader):
        result = analyze(teams_reader, "users_teams")

        assert [r.field for r in result.owner_references] == ["user", "team"]
        assert result.many_to_many == ()

    def test_junction_with_timestamps_and_two_extra_columns(self):
        """Exactly two non-meta columns still make a junction table."""
        reader = _membership_catalog(["role", "joined_on"])
        analyzer = RelationshipAnalyzer(reader, "public")

        assert analyzer.is_junction("memberships")

    def test_three_extra_columns_is_not_a_junction(self):
        reader = _membership_catalog(["role", "joined_on", "invited_by"])
        analyzer = RelationshipAnalyzer(reader, "public")

        assert not analyzer.is_junction("memberships")

    def test_near_miss_produces_inverse_collection_and_diagnostic(self):
        reader = _membership_catalog(["role", "joined_on", "invited_by"])

        result = analyze(reader, "users")

        assert result.many_to_many == ()
        assert [c.target for c in result.inverse_collections] == ["memberships"]
        assert [d.code for d in result.diagnostics] == [JUNCTION_NEAR_MISS]

    def test_single_foreign_key_is_not_a_junction(self, blog_reader):
        analyzer = RelationshipAnalyzer(blog_reader, "public")
        assert not analyzer.is_junction("posts")

    def test_three_foreign_keys_is_not_a_junction(self):
        reader = FakeCatalogReader()
        for name in ("a", "b", "c"):
            reader.add_relation(name, columns=[col("id", "integer")], primary_key=["id"])
        reader.add_relation(
            "abc",
            columns=[col("a_id", "integer"), col("b_id", "integer"), col("c_id", "integer")],
            foreign_keys=[fk("a_id", "a"), fk("b_id", "b"), fk("c_id", "c")],
        )

        assert not RelationshipAnalyzer(reader, "public").is_junction("abc")
        assert junction_tables(reader, reader.relations)["abc"] is False

    def test_custom_junction_limit(self):
        reader = _membership_catalog(["role", "joined_on"])
        conventions = Conventions(max_junction_extra_columns=1)

        assert not RelationshipAnalyzer(reader, "public", conventions).is_junction("memberships")


class TestOrdering:
    """Output follows relation enumeration order."""

    def test_inverse_collections_in_relation_order(self):
        reader = FakeCatalogReader()
        reader.add_relation("comments", columns=[col("id", "integer"), col("user_id", "integer")],
                            primary_key=["id"], foreign_keys=[fk("user_id", "users")])
        reader.add_relation("posts", columns=[col("id", "integer"), col("user_id", "integer")],
                            primary_key=["id"], foreign_keys=[fk("user_id", "users")])
        reader.add_relation("users", columns=[col("id", "integer")], primary_key=["id"])

        result = analyze(reader, "users")

        assert [c.field for c in result.inverse_collections] == ["comments", "posts"]

    @pytest.mark.parametrize("relation", ["users", "posts"])
    def test_analysis_is_repeatable(self, blog_reader, relation):
        assert analyze(blog_reader, relation) == analyze(blog_reader, relation)


class TestFieldNames:
    """Association fields never shadow columns or each other."""

    def test_owner_field_clashing_with_column(self):
        """A foreign key column without the _id suffix keeps its name."""
        reader = FakeCatalogReader()
        reader.add_relation("categories", columns=[col("id", "integer")], primary_key=["id"])
        reader.add_relation(
            "posts",
            columns=[col("id", "integer"), col("category", "integer")],
            primary_key=["id"],
            foreign_keys=[fk("category", "categories")],
        )

        result = analyze(reader, "posts")

        assert [r.field for r in result.owner_references] == ["category_ref"]
        assert result.owner_references[0].foreign_key == "category"

    def test_owner_field_clashing_with_plain_column(self):
        reader = FakeCatalogReader()
        reader.add_relation("users", columns=[col("id", "integer")], primary_key=["id"])
        reader.add_relation(
            "posts",
            columns=[col("id", "integer"), col("user", "text"), col("user_id", "integer")],
            primary_key=["id"],
            foreign_keys=[fk("user_id", "users")],
        )

        result = analyze(reader, "posts")

        assert [r.field for r in result.owner_references] == ["user_id_ref"]

    def test_inverse_collection_yields_to_many_to_many(self):
        """Owned teams and joined teams get distinct fields on users."""
        result = analyze(build_owned_teams_catalog(), "users")

        assert [e.field for e in result.many_to_many] == ["teams"]
        assert [c.field for c in result.inverse_collections] == ["teams_by_owner_id"]
        assert result.inverse_collections[0].foreign_key == "owner_id"

    def test_other_side_keeps_plain_names(self):
        result = analyze(build_owned_teams_catalog(), "teams")

        assert [r.field for r in result.owner_references] == ["user"]
        assert [e.field for e in result.many_to_many] == ["users"]

    def test_many_to_many_clashing_with_column(self):
        reader = _membership_catalog([])
        reader.columns[("public", "users")].append(col("groups", "integer"))

        result = analyze(reader, "users")

        assert [e.field for e in result.many_to_many] == ["groups_via_memberships"]

    def test_field_names_unique_per_relation(self):
        reader = build_owned_teams_catalog()
        for relation in ("users", "teams", "users_teams"):
            result = analyze(reader, relation)
            fields = [a.field for a in result.all]
            columns = {c.name for c in reader.get_columns(relation, "public")}

            assert len(fields) == len(set(fields))
            assert not columns & set(fields)


def _membership_catalog(extra_columns):
    reader = FakeCatalogReader()
    reader.add_relation("groups", columns=[col("id", "integer")], primary_key=["id"])
    reader.add_relation(
        "memberships",
        columns=[
            col("id", "integer"),
            col("user_id", "integer"),
            col("group_id", "integer"),
            col("inserted_at", "timestamp"),
            col("updated_at", "timestamp"),
        ] + [col(name, "text") for name in extra_columns],
        primary_key=["id"],
        foreign_keys=[fk("user_id", "users"), fk("group_id", "groups")],
    )
    reader.add_relation("users", columns=[col("id", "integer")], primary_key=["id"])
    return reader
