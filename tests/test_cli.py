"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from gql_viewgen import __version__
from gql_viewgen.cli import main


USER_GO = '''
package models

// @GqlType
// @GqlType(name:"PublicView")
// @GqlInput
type User struct {
	ID    string `gql:"id,ro"`
	Email string `gql:"email,required,include:[PublicView]"`
	Name  string `gql:"name,omit:[PublicView]"`
}
'''

CONFLICT_GO = '''
// @GqlType
// @GqlType(name:"AdminView")
type User struct {
	Email string `gql:"email,ro:[AdminView],wo:[AdminView]"`
	Name  string
}
'''


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def models(tmp_path):
    source = tmp_path / "models"
    source.mkdir()
    (source / "user.go").write_text(USER_GO)
    return source


class TestGenerate:
    """Tests for the generate command."""

    def test_writes_schema(self, runner, models, tmp_path):
        output = tmp_path / "out" / "schema.graphql"
        result = runner.invoke(main, ["generate", "-s", str(models), "-o", str(output)])
        assert result.exit_code == 0, result.output
        text = output.read_text()
        assert "type PublicView {\n  email: String!\n}\n" in text
        assert "input UserInput {\n  email: String!\n  name: String\n}\n" in text
        assert "Done! Generated 3 view(s)." in result.output

    def test_header_option(self, runner, models, tmp_path):
        output = tmp_path / "schema.graphql"
        result = runner.invoke(
            main, ["generate", "-s", str(models), "-o", str(output), "--header", "DO NOT EDIT"]
        )
        assert result.exit_code == 0, result.output
        assert output.read_text().startswith("# DO NOT EDIT\n\n")

    def test_config_file(self, runner, models, tmp_path):
        config = tmp_path / "gql-viewgen.toml"
        config.write_text('input_suffix = "Params"\n')
        output = tmp_path / "schema.graphql"
        result = runner.invoke(main, ["generate", "-s", str(models), "-o", str(output), "-c", str(config)])
        assert result.exit_code == 0, result.output
        assert "input UserParams {" in output.read_text()

    def test_explicit_only(self, runner, tmp_path):
        source = tmp_path / "plain.go"
        source.write_text("type Plain struct {\n\tName string\n}\n")
        output = tmp_path / "schema.graphql"
        result = runner.invoke(main, ["generate", "-s", str(source), "-o", str(output), "--explicit-only"])
        assert result.exit_code == 0, result.output
        assert output.read_text() == ""

    def test_validation_error_writes_nothing(self, runner, tmp_path):
        source = tmp_path / "user.go"
        source.write_text(CONFLICT_GO)
        output = tmp_path / "schema.graphql"
        result = runner.invoke(main, ["generate", "-s", str(source), "-o", str(output)])
        assert result.exit_code == 1
        assert not output.exists()
        assert "ConflictingMutability" in result.output
        assert "nothing was generated" in result.output

    def test_syntax_error_writes_nothing(self, runner, tmp_path):
        source = tmp_path / "user.go"
        source.write_text('// @GqlType(name:"X"\ntype User struct {\n\tName string\n}\n')
        output = tmp_path / "schema.graphql"
        result = runner.invoke(main, ["generate", "-s", str(source), "-o", str(output)])
        assert result.exit_code == 1
        assert not output.exists()
        assert "unterminated argument list" in result.output

    def test_warnings_are_printed(self, runner, tmp_path):
        source = tmp_path / "user.go"
        source.write_text('// @GqlType\ntype User struct {\n\tName string `gql:"name,colour:blue"`\n}\n')
        output = tmp_path / "schema.graphql"
        result = runner.invoke(main, ["generate", "-s", str(source), "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert "warning: UnknownOption" in result.output
        assert output.exists()


class TestCheck:
    """Tests for the check command."""

    def test_clean(self, runner, models):
        result = runner.invoke(main, ["check", "-s", str(models)])
        assert result.exit_code == 0, result.output
        assert "0 error(s), 0 warning(s)" in result.output

    def test_errors_exit_nonzero(self, runner, tmp_path):
        source = tmp_path / "user.go"
        source.write_text(CONFLICT_GO)
        result = runner.invoke(main, ["check", "-s", str(source)])
        assert result.exit_code == 1
        assert "error: ConflictingMutability: User.Email [AdminView]" in result.output


class TestViews:
    """Tests for the views command."""

    def test_lists_views(self, runner, models):
        result = runner.invoke(main, ["views", "-s", str(models)])
        assert result.exit_code == 0, result.output
        assert "type PublicView (User, opt-in)" in result.output
        assert "  email: String! [rw]" in result.output
        assert "input UserInput (User, opt-out)" in result.output


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
