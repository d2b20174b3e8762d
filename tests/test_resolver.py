"""Unit tests for the view resolver."""

import pytest

from gql_viewgen.core.builder import EntityBuilder
from gql_viewgen.core.config import GeneratorConfig
from gql_viewgen.core.declarations import EntityDeclaration, MemberDeclaration
from gql_viewgen.core.ir import Access, EntityKind, InclusionMode
from gql_viewgen.core.resolver import ViewResolver


USER_ANNOTATION = (
    "// User is an account.\n"
    "// @GqlType\n"
    '// @GqlType(name:"AdminView")\n'
    '// @GqlType(name:"PublicView")\n'
    "// @GqlInput\n"
)

USER_MEMBERS = [
    ("ID", "string", 'gql:"id,ro"'),
    ("Email", "string", 'gql:"email,required"'),
    ("Password", "string", '// @GqlField(description:"Hashed password")\ngql:"password,wo"'),
    ("Name", "string", 'gql:"name,rw:[UserInput,PublicView]"'),
    ("CreatedAt", "time.Time", "gql:\"createdAt,ro:'AdminView,PublicView'\""),
]


def declare(name, annotation="", members=(), kind="object"):
    return EntityDeclaration(
        kind=kind,
        declared_name=name,
        raw_annotation=annotation,
        members=[
            MemberDeclaration(declared_name=n, declared_type=t, raw_annotation=a) for n, t, a in members
        ],
    )


def resolve(*declarations, config=None):
    config = config or GeneratorConfig()
    builder = EntityBuilder(config)
    entities = [builder.build(d, i) for i, d in enumerate(declarations)]
    return ViewResolver(config).resolve(entities)


def names(view):
    return [f.name for f in view.fields]


@pytest.fixture
def user_schema():
    return resolve(declare("User", USER_ANNOTATION, USER_MEMBERS))


# =============================================================================
# Scenario
# =============================================================================


class TestUserViews:
    """One User entity bound to several views."""

    def test_view_names_in_binding_order(self, user_schema):
        assert user_schema.view_names == ["User", "AdminView", "PublicView", "UserInput"]

    def test_public_view(self, user_schema):
        view = user_schema.views["PublicView"]
        assert names(view) == ["email", "name", "createdAt"]
        assert view.get_field("createdAt").access is Access.READ_ONLY
        assert view.get_field("name").access is Access.READ_WRITE
        assert view.get_field("email").required
        assert view.inclusion_mode is InclusionMode.OPT_IN

    def test_write_only_field_not_in_object_views(self, user_schema):
        for view_name in ("User", "AdminView", "PublicView"):
            assert user_schema.views[view_name].get_field("password") is None

    def test_default_view_is_opt_out(self, user_schema):
        view = user_schema.views["User"]
        assert view.inclusion_mode is InclusionMode.OPT_OUT
        assert names(view) == ["id", "email", "name", "createdAt"]

    def test_admin_view_lists_only_its_fields(self, user_schema):
        assert names(user_schema.views["AdminView"]) == ["email", "createdAt"]

    def test_input_view(self, user_schema):
        view = user_schema.views["UserInput"]
        assert view.kind is EntityKind.INPUT
        # id is read-only everywhere
        assert names(view) == ["email", "password", "name", "createdAt"]
        assert view.get_field("password").description == "Hashed password"
        assert view.get_field("password").access is Access.WRITE_ONLY

    def test_custom_scalars_collected(self, user_schema):
        assert user_schema.scalars == ["Time"]


# =============================================================================
# Inclusion
# =============================================================================


class TestInclusion:
    """Tests for include/omit and inclusion modes."""

    def test_omit_for_one_view(self):
        schema = resolve(
            declare(
                "User",
                '@GqlType\n@GqlType(name:"PublicView")',
                [("Email", "string", ""), ("Phone", "string", 'gql:"phone,omit:[PublicView]"')],
            )
        )
        assert names(schema.views["User"]) == ["email", "phone"]
        assert names(schema.views["PublicView"]) == ["email"]

    def test_omit_everywhere(self):
        schema = resolve(declare("User", "@GqlType", [("Email", "string", ""), ("Hash", "string", 'gql:"-"')]))
        assert names(schema.views["User"]) == ["email"]

    def test_single_view_stays_opt_out(self):
        schema = resolve(
            declare(
                "User",
                "@GqlType",
                [("Email", "string", 'gql:"email,include:[User]"'), ("Name", "string", "")],
            )
        )
        view = schema.views["User"]
        assert view.inclusion_mode is InclusionMode.OPT_OUT
        assert names(view) == ["email", "name"]

    def test_include_switches_sibling_view_to_opt_in(self):
        schema = resolve(
            declare(
                "User",
                '@GqlType\n@GqlType(name:"Summary")',
                [
                    ("ID", "string", 'gql:"id,include:[Summary]"'),
                    ("Email", "string", ""),
                    ("Bio", "string", 'gql:"bio,omit:[Summary]"'),
                ],
            )
        )
        summary = schema.views["Summary"]
        assert summary.inclusion_mode is InclusionMode.OPT_IN
        assert names(summary) == ["id", "email"]
        assert names(schema.views["User"]) == ["id", "email", "bio"]

    def test_bare_include_targets_every_view(self):
        schema = resolve(
            declare(
                "User",
                '@GqlType\n@GqlType(name:"Summary")',
                [("ID", "string", 'gql:"id,include:[Summary]"'), ("Name", "string", 'gql:"name,include,ro"')],
            )
        )
        assert names(schema.views["Summary"]) == ["id", "name"]


# =============================================================================
# Mutability and requiredness
# =============================================================================


class TestPolicies:
    """Tests for per-view access, requiredness and renames."""

    def test_read_only_dropped_from_input(self):
        schema = resolve(declare("User", "@GqlType\n@GqlInput", [("ID", "string", 'gql:"id,ro"')]))
        assert names(schema.views["User"]) == ["id"]
        assert names(schema.views["UserInput"]) == []

    def test_qualified_access_overrides_field_wide(self):
        schema = resolve(
            declare("User", "@GqlType\n@GqlInput", [("Email", "string", 'gql:"email,ro,rw:[UserInput]"')])
        )
        assert schema.views["User"].get_field("email").access is Access.READ_ONLY
        assert schema.views["UserInput"].get_field("email").access is Access.READ_WRITE

    def test_entity_default_applies_to_unflagged_fields(self):
        schema = resolve(
            declare(
                "Audit",
                "@GqlType(ro)\n@GqlInput",
                [("At", "time.Time", ""), ("Note", "string", 'gql:"note,rw"')],
            )
        )
        assert schema.views["Audit"].get_field("at").access is Access.READ_ONLY
        assert names(schema.views["AuditInput"]) == ["note"]

    def test_required_per_view(self):
        schema = resolve(
            declare(
                "User",
                "@GqlType\n@GqlInput",
                [("Email", "string", 'gql:"email,required:[UserInput]"')],
            )
        )
        assert not schema.views["User"].get_field("email").required
        assert schema.views["UserInput"].get_field("email").required

    def test_required_from_nullability(self):
        schema = resolve(
            declare("User", "@GqlType", [("Name", "string", ""), ("Nick", "*string", "")]),
            config=GeneratorConfig(strict_nullability=True),
        )
        view = schema.views["User"]
        assert view.get_field("name").type_ref == "String!"
        assert view.get_field("nick").type_ref == "String"

    def test_optional_overrides_nullability(self):
        schema = resolve(
            declare("User", "@GqlType", [("Name", "string", 'gql:"name,optional"')]),
            config=GeneratorConfig(strict_nullability=True),
        )
        assert not schema.views["User"].get_field("name").required

    def test_rename_for_one_view(self):
        schema = resolve(
            declare(
                "User",
                '@GqlType\n@GqlType(name:"AdminView")',
                [("Email", "string", '@GqlField(name:"loginEmail":[AdminView])')],
            )
        )
        assert names(schema.views["User"]) == ["email"]
        assert names(schema.views["AdminView"]) == ["loginEmail"]

    def test_description_qualified_wins(self):
        schema = resolve(
            declare(
                "User",
                '@GqlType\n@GqlType(name:"AdminView")',
                [("Email", "string", '@GqlField(description:"Email")\n@GqlField(description:"Verified":[AdminView])')],
            )
        )
        assert schema.views["User"].get_field("email").description == "Email"
        assert schema.views["AdminView"].get_field("email").description == "Verified"

    def test_force_resolver_only_on_objects(self):
        schema = resolve(
            declare("User", "@GqlType\n@GqlInput", [("Friends", "[]string", 'gql:"friends,forceResolver"')])
        )
        assert schema.views["User"].get_field("friends").force_resolver
        assert not schema.views["UserInput"].get_field("friends").force_resolver


# =============================================================================
# Cross-entity
# =============================================================================


class TestReferences:
    """Tests for references between entities."""

    def test_type_references_follow_bindings(self):
        schema = resolve(
            declare("Role", "@GqlEnum(name:\"UserRole\")", kind="enum"),
            declare("Address", "@GqlType\n@GqlInput(name:\"AddressData\")", [("City", "string", "")]),
            declare(
                "User",
                "@GqlType\n@GqlInput",
                [("Role", "Role", ""), ("Home", "*models.Address", ""), ("Past", "[]Address", "")],
            ),
        )
        user = schema.views["User"]
        assert user.get_field("role").type_name == "UserRole"
        assert user.get_field("home").type_name == "Address"
        assert user.get_field("past").type_name == "[Address]"
        user_input = schema.views["UserInput"]
        assert user_input.get_field("home").type_name == "AddressData"
        assert user_input.get_field("role").type_name == "UserRole"

    def test_enum_view_copies_values(self):
        declaration = EntityDeclaration(
            kind="enum",
            declared_name="Role",
            raw_annotation="@GqlEnum",
            members=[
                MemberDeclaration(declared_name="RoleAdmin", declared_type="Role", value="admin"),
                MemberDeclaration(declared_name="RoleUser", declared_type="Role", value="user"),
            ],
        )
        schema = resolve(declaration)
        assert [v.name for v in schema.views["Role"].values] == ["ADMIN", "USER"]

    def test_first_binding_wins_on_collision(self):
        schema = resolve(
            declare("User", '@GqlType(name:"AdminView")', [("Email", "string", "")]),
            declare("Staff", '@GqlType(name:"AdminView")', [("Badge", "string", "")]),
        )
        assert schema.views["AdminView"].entity.declared_name == "User"
        assert [(e.declared_name, b.name) for e, b in schema.collisions] == [("Staff", "AdminView")]

    def test_ignored_entity_has_no_views(self):
        schema = resolve(declare("Secret", '@GqlIgnoreAll\n@GqlType(name:"SecretView")', [("Key", "string", "")]))
        assert schema.views == {}

    def test_order_follows_declarations(self):
        builder = EntityBuilder(GeneratorConfig())
        entities = [
            builder.build(declare("B", "@GqlType"), 1),
            builder.build(declare("A", "@GqlType"), 0),
        ]
        schema = ViewResolver(GeneratorConfig()).resolve(entities)
        assert schema.view_names == ["A", "B"]
