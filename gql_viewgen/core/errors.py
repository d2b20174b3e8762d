"""Exception types raised by the schema pipeline.

Validation findings are plain values (see ``ir.ValidationIssue``); the
exceptions here are what the pipeline raises once it decides to stop.
"""


class GqlViewgenError(Exception):
    """Base exception for all gql-viewgen errors."""


class DirectiveSyntaxError(GqlViewgenError):
    """Raised when annotation text cannot be parsed into directives.

    Attributes:
        message: What went wrong
        text: The offending substring
        position: Offset of ``text`` within the annotation
        source: Identity of the unit being parsed (e.g. "User.Email"), if known
    """

    def __init__(self, message: str, text: str, position: int, source: str | None = None):
        self.message = message
        self.text = text
        self.position = position
        self.source = source
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        where = f"{self.source}: " if self.source else ""
        return f"{where}{self.message} at position {self.position}: {self.text!r}"

    def with_source(self, source: str) -> "DirectiveSyntaxError":
        """Return a copy of this error attributed to ``source``."""
        return DirectiveSyntaxError(self.message, self.text, self.position, source)


class DirectiveSyntaxErrors(GqlViewgenError):
    """Raised after the parse phase when any unit had a syntax error."""

    def __init__(self, errors: list[DirectiveSyntaxError]):
        self.errors = errors
        lines = [f"{len(errors)} directive syntax error(s):"]
        lines.extend(f"  {e}" for e in errors)
        super().__init__("\n".join(lines))


class SchemaValidationError(GqlViewgenError):
    """Raised when the validator reports at least one error-severity issue."""

    def __init__(self, issues: list):
        self.issues = issues
        errors = [i for i in issues if i.is_error]
        lines = [f"{len(errors)} schema validation error(s):"]
        lines.extend(f"  {i}" for i in errors)
        super().__init__("\n".join(lines))


class DeclarationError(GqlViewgenError):
    """Raised when declaration input cannot be loaded or is malformed."""


class ConfigError(GqlViewgenError):
    """Raised when a configuration file cannot be loaded or is invalid."""
