"""Declaration input: the entities and members the builder consumes.

Declarations arrive either as JSON (the extraction contract, camelCase or
snake_case keys) or are extracted from Go source files:

    // @GqlType
    // @GqlType(name:"PublicView")
    type User struct {
        ID    string `gql:"id,ro"`
        Email string `gql:"email,required"`
    }
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from .errors import DeclarationError

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".go", ".json")


class MemberDeclaration(BaseModel):
    """A struct field or enum constant as extracted from source."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    declared_name: str
    declared_type: str = ""
    raw_annotation: str = ""
    # Underlying literal of an enum constant
    value: str | None = None


class EntityDeclaration(BaseModel):
    """A declared type and its members, in declaration order."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    kind: Literal["object", "enum"]
    declared_name: str
    raw_annotation: str = ""
    members: list[MemberDeclaration] = []
    source: str | None = None

    @property
    def unit_name(self) -> str:
        """Identity used in diagnostics, e.g. 'models/user.go:User'."""
        if self.source:
            return f"{self.source}:{self.declared_name}"
        return self.declared_name


def parse_declarations(data) -> list[EntityDeclaration]:
    """Validate already-decoded JSON data into declarations.

    Accepts a list of entities or an object with an ``entities`` list.
    """
    if isinstance(data, dict):
        data = data.get("entities", [])
    if not isinstance(data, list):
        raise DeclarationError("Declarations must be a list of entities")
    try:
        return [EntityDeclaration.model_validate(item) for item in data]
    except ValidationError as e:
        raise DeclarationError(f"Invalid declaration:\n{e}") from e


def load_declarations(path: str | Path) -> list[EntityDeclaration]:
    """Load declarations from a JSON file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        raise DeclarationError(f"Cannot read declarations from {path}: {e}") from e
    declarations = parse_declarations(data)
    return [d if d.source else d.model_copy(update={"source": str(path)}) for d in declarations]


def collect_sources(path: str | Path) -> list[str]:
    """Collect all .go and .json files from a file or directory path."""
    path = str(path)
    files = []
    if os.path.isfile(path):
        if path.endswith(SOURCE_SUFFIXES):
            files.append(path)
    else:
        for root, _, filenames in os.walk(path):
            for filename in filenames:
                if filename.endswith(SOURCE_SUFFIXES) and not filename.endswith("_test.go"):
                    files.append(os.path.join(root, filename))
    return sorted(files)


def load_sources(paths: list[str]) -> list[EntityDeclaration]:
    """Load declarations from a mix of .json and .go files, in path order."""
    declarations: list[EntityDeclaration] = []
    extractor = GoExtractor()
    for file_path in paths:
        if file_path.endswith(".json"):
            declarations.extend(load_declarations(file_path))
        else:
            with open(file_path) as f:
                extractor.feed(f.read(), source=file_path)
    declarations.extend(extractor.declarations())
    return declarations


_TYPE_STRUCT = re.compile(r"^type\s+([A-Za-z_]\w*)\s+struct\s*\{(.*)$")
_TYPE_NAMED = re.compile(r"^type\s+([A-Za-z_]\w*)\s+([\w.]+)\s*(?://.*)?$")
_FIELD = re.compile(
    r"^([A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)\s+([^`/]+?)\s*(`[^`]*`)?\s*(//.*)?$"
)
_CONST_SINGLE = re.compile(r"^const\s+(?!\()(.*)$")
_CONST_SPEC = re.compile(
    r"^([A-Za-z_]\w*)(?:\s+([\w.]+))?\s*"
    r'(?:=\s*("(?:[^"\\]|\\.)*"|`[^`]*`|[^/"`]+?))?\s*(//.*)?$'
)
_STRING_LITERAL = re.compile(r'^"((?:[^"\\]|\\.)*)"$|^`([^`]*)`$')

# Named basic types that may back an enum
_ENUM_BASES = frozenset(
    {"string", "int", "int8", "int16", "int32", "int64", "uint", "uint8", "uint16", "uint32"}
)


class _Pending:
    """Accumulates a declaration while its body is being read."""

    def __init__(self, kind: str, name: str, annotation: str, source: str | None):
        self.kind = kind
        self.name = name
        self.annotation = annotation
        self.source = source
        self.members: list[MemberDeclaration] = []


class GoExtractor:
    """Line-based extraction of annotated Go declarations.

    Handles ``type X struct {...}`` with field comments and struct tags, and
    named basic types (``type Role string``) with their typed constants.
    Constants may live in any file fed to the same extractor; they are
    attached to their type when ``declarations()`` is called.

    Example:
        extractor = GoExtractor()
        extractor.feed(source_text, source="models/user.go")
        declarations = extractor.declarations()
    """

    def __init__(self):
        self._entities: list[_Pending] = []
        # type name -> constants of that type, in source order
        self._constants: dict[str, list[MemberDeclaration]] = {}

    def feed(self, text: str, source: str | None = None):
        """Extract declarations from one Go source file."""
        comments: list[str] = []
        struct: _Pending | None = None
        depth = 0
        in_const = False
        const_type = ""
        in_block_comment = False

        for raw_line in text.splitlines():
            line = raw_line.strip()

            if in_block_comment:
                comments.append(line)
                if "*/" in line:
                    in_block_comment = False
                continue
            if line.startswith("/*"):
                comments.append(line)
                in_block_comment = "*/" not in line
                continue
            if line.startswith("//"):
                comments.append(line)
                continue
            if not line:
                comments = []
                continue

            if struct is not None:
                if depth == 1 and line.startswith("}"):
                    self._entities.append(struct)
                    logger.debug("Extracted struct %s (%d fields)", struct.name, len(struct.members))
                    struct = None
                elif depth > 1 or line.endswith("{"):
                    # Nested anonymous struct bodies are skipped
                    depth += line.count("{") - line.count("}")
                else:
                    struct.members.extend(self._parse_field(line, comments))
                comments = []
                continue

            if in_const:
                if line.startswith(")"):
                    in_const = False
                else:
                    const_type = self._parse_const(line, comments, const_type)
                comments = []
                continue

            annotation = "\n".join(comments)
            comments = []

            match = _TYPE_STRUCT.match(line)
            if match:
                struct = _Pending("object", match.group(1), annotation, source)
                depth = 1
                if "}" in match.group(2):
                    self._entities.append(struct)
                    struct = None
                continue

            match = _TYPE_NAMED.match(line)
            if match and match.group(2) in _ENUM_BASES:
                self._entities.append(_Pending("enum", match.group(1), annotation, source))
                continue

            if line.startswith("const ("):
                in_const = True
                const_type = ""
                continue

            match = _CONST_SINGLE.match(line)
            if match:
                self._parse_const(match.group(1), annotation.splitlines(), "")

    @staticmethod
    def _parse_field(line: str, comments: list[str]) -> list[MemberDeclaration]:
        match = _FIELD.match(line)
        if not match:
            # Embedded fields and anything unrecognised carry no member
            return []
        names, declared_type, tag, trailing = match.groups()
        annotation = "\n".join(comments + [c for c in (trailing, tag) if c])
        members = []
        for name in (n.strip() for n in names.split(",")):
            if not name[0].isupper():
                # unexported
                continue
            members.append(
                MemberDeclaration(
                    declared_name=name,
                    declared_type=declared_type.strip(),
                    raw_annotation=annotation,
                )
            )
        return members

    def _parse_const(self, line: str, comments: list[str], const_type: str) -> str:
        """Record one constant line; returns the type implied for the lines that follow."""
        match = _CONST_SPEC.match(line)
        if not match:
            logger.debug("Skipping unrecognised constant line: %s", line)
            return const_type
        name, declared_type, value, trailing = match.groups()
        declared_type = declared_type or const_type
        if not declared_type:
            return const_type

        # iota and other non-string values leave the literal unset
        literal = None
        if value:
            string_match = _STRING_LITERAL.match(value.strip())
            if string_match:
                double_quoted, raw = string_match.groups()
                literal = double_quoted if double_quoted is not None else raw
        annotation = "\n".join(comments + ([trailing] if trailing else []))
        self._constants.setdefault(declared_type, []).append(
            MemberDeclaration(
                declared_name=name,
                declared_type=declared_type,
                raw_annotation=annotation,
                value=literal,
            )
        )
        return declared_type

    def declarations(self) -> list[EntityDeclaration]:
        """Return every extracted declaration in source order.

        Named basic types become enums only when they carry an annotation or
        have constants.
        """
        result = []
        for pending in self._entities:
            members = pending.members
            if pending.kind == "enum":
                members = self._constants.get(pending.name, [])
                if not members and "@" not in pending.annotation:
                    continue
            result.append(
                EntityDeclaration(
                    kind=pending.kind,
                    declared_name=pending.name,
                    raw_annotation=pending.annotation,
                    members=members,
                    source=pending.source,
                )
            )
        return result


def extract_go_declarations(text: str, source: str | None = None) -> list[EntityDeclaration]:
    """Extract declarations from a single Go source text."""
    extractor = GoExtractor()
    extractor.feed(text, source=source)
    return extractor.declarations()
