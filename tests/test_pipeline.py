"""Tests for the end-to-end pipeline."""

import time

import pytest

from gql_viewgen.core.builder import EntityBuilder
from gql_viewgen.core.config import GeneratorConfig
from gql_viewgen.core.declarations import EntityDeclaration, MemberDeclaration, extract_go_declarations
from gql_viewgen.core.errors import DirectiveSyntaxErrors, SchemaValidationError
from gql_viewgen.core.hooks import FilterViewsHook, HookRunner
from gql_viewgen.core.ir import IssueKind
from gql_viewgen.core.pipeline import SchemaPipeline, generate_schema


USER_GO = '''
package models

import "time"

// User is an account.
// @GqlType
// @GqlType(name:"AdminView")
// @GqlType(name:"PublicView")
// @GqlInput
type User struct {
	ID       string `json:"id" gql:"id,ro"`
	Email    string `json:"email" gql:"email,required"`
	// @GqlField(description:"Hashed password")
	Password string `json:"-" gql:"password,wo"`
	Name     string `gql:"name,rw:[UserInput,PublicView]"`
	CreatedAt time.Time `gql:"createdAt,ro:'AdminView,PublicView'"`
	Role      Role   `gql:"role,omit:[PublicView]"`
}

// @GqlEnum
type Role string

const (
	RoleAdmin Role = "admin"
	// @GqlEnumValue(deprecated:"Use 'user' instead")
	RoleMember Role = "member"
	RoleUser   Role = "user"
)
'''


def declare(name, annotation="", members=()):
    return EntityDeclaration(
        kind="object",
        declared_name=name,
        raw_annotation=annotation,
        members=[
            MemberDeclaration(declared_name=n, declared_type=t, raw_annotation=a) for n, t, a in members
        ],
    )


@pytest.fixture
def user_declarations():
    return extract_go_declarations(USER_GO, source="models/user.go")


class TestRun:
    """Tests for SchemaPipeline.run."""

    def test_generates_all_views(self, user_declarations):
        result = SchemaPipeline().run(user_declarations)
        assert result.schema.view_names == ["User", "AdminView", "PublicView", "UserInput", "Role"]
        assert result.warnings == []
        assert "type PublicView {\n  email: String!\n  name: String\n  createdAt: Time\n}\n" in result.text
        assert "  role: Role\n" in result.text
        assert '  MEMBER @deprecated(reason: "Use \'user\' instead")\n' in result.text

    def test_deterministic(self, user_declarations):
        first = SchemaPipeline(GeneratorConfig(max_workers=1)).run(user_declarations).text
        second = SchemaPipeline(GeneratorConfig(max_workers=8)).run(user_declarations).text
        assert first == second

    def test_order_independent_of_completion(self, monkeypatch):
        original = EntityBuilder.build

        def slow_first(self, declaration, order=0):
            # Earlier declarations finish last
            time.sleep(0.02 * (3 - order))
            return original(self, declaration, order)

        monkeypatch.setattr(EntityBuilder, "build", slow_first)
        declarations = [declare(name, "@GqlType", [("ID", "string", "")]) for name in ("A", "B", "C")]
        result = SchemaPipeline(GeneratorConfig(max_workers=3)).run(declarations)
        assert result.schema.view_names == ["A", "B", "C"]
        assert result.text.index("type A") < result.text.index("type B") < result.text.index("type C")

    def test_warnings_do_not_block(self):
        result = SchemaPipeline().run([declare("User", "@GqlType", [("Email", "string", 'gql:"email,colour:blue"')])])
        assert [w.kind for w in result.warnings] == [IssueKind.UNKNOWN_OPTION]
        assert "type User {" in result.text

    def test_header(self):
        config = GeneratorConfig(header="Code generated by gql-viewgen. DO NOT EDIT.")
        text = SchemaPipeline(config).run([declare("User", "@GqlType", [("ID", "string", "")])]).text
        assert text.startswith("# Code generated by gql-viewgen. DO NOT EDIT.\n\ntype User {")

    def test_hooks(self, user_declarations):
        hooks = HookRunner()
        hooks.add_pre_hook(FilterViewsHook(exclude_suffix="View"))
        result = SchemaPipeline(hooks=hooks).run(user_declarations)
        assert "AdminView" not in result.text
        assert "PublicView" not in result.text
        assert "type User {" in result.text

    def test_namespace_directives_are_accepted(self):
        source = (
            '// @GqlNamespace(name:"users")\n'
            "// @GqlUseModelDirective\n"
            "// @GqlType\n"
            "type User struct {\n\tName string\n}\n"
        )
        result = SchemaPipeline().run(extract_go_declarations(source))
        assert result.text == "type User {\n  name: String\n}\n"
        assert result.schema.entities[0].namespace == "users"

    def test_generate_schema(self, user_declarations):
        assert generate_schema(user_declarations) == SchemaPipeline().run(user_declarations).text


class TestFailures:
    """Errors abort the run without output."""

    def test_syntax_errors_collected_in_order(self):
        declarations = [
            declare("A", "@GqlType", [("Bad", "string", "@GqlField(name:)")]),
            declare("B", "@GqlType", [("Good", "string", "")]),
            declare("C", "@GqlType(name:", []),
        ]
        with pytest.raises(DirectiveSyntaxErrors) as exc_info:
            SchemaPipeline().run(declarations)
        assert [e.source for e in exc_info.value.errors] == ["A.Bad", "C"]

    def test_conflicting_mutability_blocks_output(self):
        declaration = declare(
            "User",
            '@GqlType\n@GqlType(name:"AdminView")',
            [("Email", "string", 'gql:"email,ro:[AdminView],wo:[AdminView]"'), ("Name", "string", "")],
        )
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaPipeline().run([declaration])
        assert [i.kind for i in exc_info.value.issues] == [IssueKind.CONFLICTING_MUTABILITY]

    def test_duplicate_view_name_aborts(self):
        declarations = [
            declare("User", '@GqlType(name:"AdminView")', [("Email", "string", "")]),
            declare("Staff", '@GqlType(name:"AdminView")', [("Badge", "string", "")]),
        ]
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaPipeline().run(declarations)
        assert IssueKind.DUPLICATE_VIEW_NAME in [i.kind for i in exc_info.value.issues]

    def test_filtered_view_still_referenced_aborts(self):
        declarations = [
            declare("User", "@GqlType", [("Profile", "*Profile", "")]),
            declare("Profile", "@GqlType", [("Bio", "string", "")]),
        ]
        hooks = HookRunner()
        hooks.add_pre_hook(FilterViewsHook(exclude_prefix="Profile"))
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaPipeline(hooks=hooks).run(declarations)
        assert [(i.kind, i.view, i.field_name) for i in exc_info.value.issues] == [
            (IssueKind.UNKNOWN_VIEW_REFERENCE, "User", "Profile")
        ]

    def test_ignore_propagation(self):
        declarations = [
            declare("Secret", '@GqlIgnoreAll\n@GqlType(name:"SecretView")', [("Key", "string", "")]),
            declare("User", "@GqlType", [("Key", "string", 'gql:"key,include:[SecretView]"')]),
        ]
        issues = SchemaPipeline().check(declarations)
        assert [(i.kind, i.view) for i in issues] == [(IssueKind.UNKNOWN_VIEW_REFERENCE, "SecretView")]
        with pytest.raises(SchemaValidationError):
            SchemaPipeline().run(declarations)

    def test_check_returns_issues_without_raising(self):
        issues = SchemaPipeline().check(
            [declare("User", "@GqlType", [("Email", "string", 'gql:"email,required,optional"')])]
        )
        assert [i.kind for i in issues] == [IssueKind.CONFLICTING_REQUIREDNESS]
