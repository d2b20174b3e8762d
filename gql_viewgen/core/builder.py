"""Entity model builder.

Builds one ``IREntity`` from a declaration: parses the entity annotation for
bindings, then each member annotation for field policy rules or enum value
settings. The compact tag form and the verbose comment form normalize to the
same rules:

    Email string `gql:"email,ro:[AdminView]"`
    // @GqlField(email, readonly:[AdminView])
"""

import logging
import re

from .config import GeneratorConfig
from .declarations import EntityDeclaration, MemberDeclaration
from .ir import (
    Access,
    Concern,
    EntityKind,
    IRBinding,
    IREntity,
    IREnumValue,
    IRField,
    IssueKind,
    PolicyRule,
    ValidationIssue,
)
from .parser import Directive, DirectiveArgument, DirectiveParser
from .scalars import TypeMapping

logger = logging.getLogger(__name__)

ACCESS_OPTIONS = {
    "ro": Access.READ_ONLY,
    "readonly": Access.READ_ONLY,
    "read_only": Access.READ_ONLY,
    "wo": Access.WRITE_ONLY,
    "writeonly": Access.WRITE_ONLY,
    "write_only": Access.WRITE_ONLY,
    "rw": Access.READ_WRITE,
    "readwrite": Access.READ_WRITE,
    "read_write": Access.READ_WRITE,
}

INCLUSION_OPTIONS = {
    "include": True,
    "omit": False,
    "ignore": False,
    "exclude": False,
}

REQUIRED_OPTIONS = {
    "required": True,
    "optional": False,
}

TEXT_OPTIONS = {
    "name": Concern.NAME,
    "type": Concern.TYPE,
    "description": Concern.DESCRIPTION,
    "deprecated": Concern.DEPRECATED,
}

FORCE_RESOLVER_OPTIONS = {"forceresolver", "force_resolver"}

BINDING_KINDS = {
    "GqlType": EntityKind.OBJECT,
    "GqlInput": EntityKind.INPUT,
    "GqlEnum": EntityKind.ENUM,
}

EXTRA_FIELD_ACCESS = {
    "GqlTypeExtraField": Access.READ_ONLY,
    "GqlInputExtraField": Access.WRITE_ONLY,
}

_GRAPHQL_NAME = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")


def is_flag_option(key: str) -> bool:
    """Check if a bare key is a field flag rather than a positional name.

    Keyed options such as ``name`` or ``type`` only count when they carry a
    value, so ``gql:"type,required"`` renames the field to ``type``.
    """
    key = key.lower()
    return (
        key in ACCESS_OPTIONS
        or key in INCLUSION_OPTIONS
        or key in REQUIRED_OPTIONS
        or key in FORCE_RESOLVER_OPTIONS
        or key == "deprecated"
    )


def snake_case(name: str) -> str:
    """Convert PascalCase or camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def camel_case(name: str) -> str:
    """Convert a Go identifier or snake_case name to camelCase.

    Leading initialisms are lowered as a unit: ``ID`` -> ``id``,
    ``HTTPServer`` -> ``httpServer``, ``UserID`` -> ``userID``.
    """
    if "_" in name:
        parts = [p for p in name.split("_") if p]
        if not parts:
            return name
        return camel_case(parts[0]) + "".join(p[:1].upper() + p[1:] for p in parts[1:])
    match = re.match(r"[A-Z]+", name)
    if not match:
        return name
    run = match.group(0)
    if len(run) == len(name):
        return name.lower()
    if len(run) > 1 and name[len(run)].islower():
        run = run[:-1]
    return run.lower() + name[len(run):]


def upper_snake_case(name: str) -> str:
    """Convert to UPPER_SNAKE_CASE."""
    return snake_case(name).upper()


class EntityBuilder:
    """Builds canonical entities from declarations.

    The builder holds no state between calls, so one instance may be shared
    by worker threads.

    Example:
        builder = EntityBuilder(GeneratorConfig())
        entity = builder.build(declaration, order=0)
    """

    def __init__(self, config: GeneratorConfig | None = None, type_mapping: TypeMapping | None = None):
        self.config = config or GeneratorConfig()
        self.type_mapping = type_mapping or self.config.type_mapping()

    def build(self, declaration: EntityDeclaration, order: int = 0) -> IREntity:
        """Build the entity for one declaration.

        Raises:
            DirectiveSyntaxError: if the entity or a member annotation is malformed
        """
        directives = DirectiveParser(source=declaration.unit_name).parse(declaration.raw_annotation)
        declared_kind = EntityKind.ENUM if declaration.kind == "enum" else EntityKind.OBJECT
        entity = IREntity(
            kind=declared_kind,
            declared_name=declaration.declared_name,
            order=order,
            source=declaration.source,
        )

        if any(d.name == "GqlIgnoreAll" for d in directives):
            entity.ignore_all = True
            logger.debug("Ignoring %s", declaration.unit_name)
            return entity

        extra_directives = []
        for directive in directives:
            self._note_duplicates(entity, directive)
            if directive.name in BINDING_KINDS:
                self._add_binding(entity, directive, declared_kind)
            elif directive.name in EXTRA_FIELD_ACCESS:
                extra_directives.append(directive)
            elif directive.name == "GqlNamespace":
                self._set_namespace(entity, directive)
            elif directive.name == "GqlUseModelDirective":
                logger.debug("%s: @GqlUseModelDirective has no effect on SDL", declaration.unit_name)
            else:
                entity.notes.append(
                    ValidationIssue(
                        IssueKind.INVALID_BINDING,
                        f"@{directive.name} is not valid on a type declaration",
                        entity.declared_name,
                    )
                )

        if not any(d.name in BINDING_KINDS for d in directives) and self.config.implicit_bindings:
            entity.bindings.append(IRBinding(name=entity.declared_name, kind=declared_kind))
        if entity.bindings:
            entity.kind = entity.bindings[0].kind

        if declared_kind is EntityKind.ENUM:
            for member in declaration.members:
                value = self._build_enum_value(entity, member, declaration)
                if value is not None:
                    entity.values.append(value)
        else:
            for member in declaration.members:
                entity.fields.append(self._build_field(entity, member, declaration))
            for directive in extra_directives:
                extra = self._build_extra_field(entity, directive)
                if extra is not None:
                    entity.fields.append(extra)

        logger.debug(
            "Built %s: %d binding(s), %d field(s), %d value(s)",
            entity.declared_name, len(entity.bindings), len(entity.fields), len(entity.values),
        )
        return entity

    # Entity level

    @staticmethod
    def _set_namespace(entity: IREntity, directive: Directive):
        name_arg = directive.get("name")
        namespace = name_arg.text() if name_arg is not None else None
        if not namespace:
            entity.notes.append(
                ValidationIssue(
                    IssueKind.INVALID_BINDING,
                    "@GqlNamespace requires a name",
                    entity.declared_name,
                )
            )
            return
        entity.namespace = namespace

    def _add_binding(self, entity: IREntity, directive: Directive, declared_kind: EntityKind):
        kind = BINDING_KINDS[directive.name]
        if (kind is EntityKind.ENUM) != (declared_kind is EntityKind.ENUM):
            entity.notes.append(
                ValidationIssue(
                    IssueKind.INVALID_BINDING,
                    f"@{directive.name} cannot bind a {declared_kind.value} declaration",
                    entity.declared_name,
                )
            )
            return

        name = None
        description = None
        for argument in directive.options():
            key = argument.key.lower()
            if key == "name" and argument.text():
                name = argument.text()
            elif key == "description" and argument.text():
                description = argument.text()
            elif argument.is_flag and (key in ACCESS_OPTIONS or key in REQUIRED_OPTIONS):
                self._set_entity_default(entity, directive, argument)
            else:
                entity.notes.append(
                    ValidationIssue(
                        IssueKind.UNKNOWN_OPTION,
                        f"Unknown option '{argument.key}' on @{directive.name}",
                        entity.declared_name,
                    )
                )

        if name is None:
            name = entity.declared_name
            if kind is EntityKind.INPUT:
                name += self.config.input_suffix
        entity.bindings.append(
            IRBinding(name=name, kind=kind, description=description, position=len(entity.bindings))
        )

    @staticmethod
    def _set_entity_default(entity: IREntity, directive: Directive, argument: DirectiveArgument):
        """Apply an unqualified flag on a binding directive as an entity-wide default.

        The most recently declared directive wins.
        """
        key = argument.key.lower()
        defaults = entity.field_defaults
        if key in ACCESS_OPTIONS:
            attr, value = "access", ACCESS_OPTIONS[key]
        else:
            attr, value = "required", REQUIRED_OPTIONS[key]
        previous = getattr(defaults, attr)
        if previous is not None and previous != value:
            entity.notes.append(
                ValidationIssue(
                    IssueKind.OVERRIDDEN_ENTITY_DEFAULT,
                    f"@{directive.name} overrides the entity default '{attr}' "
                    f"({_display(previous)} -> {_display(value)})",
                    entity.declared_name,
                )
            )
        setattr(defaults, attr, value)

    @staticmethod
    def _note_duplicates(entity: IREntity, directive: Directive, field_name: str | None = None):
        for key in directive.duplicate_keys():
            entity.notes.append(
                ValidationIssue(
                    IssueKind.DUPLICATE_ARGUMENT,
                    f"'{key}' given more than once in @{directive.name}; the last one is used",
                    entity.declared_name,
                    field_name,
                )
            )

    # Fields

    def _field_name(self, declared_name: str) -> str:
        if self.config.field_case == "camel":
            return camel_case(declared_name)
        if self.config.field_case == "snake":
            return snake_case(declared_name)
        return declared_name

    def _build_field(
        self, entity: IREntity, member: MemberDeclaration, declaration: EntityDeclaration
    ) -> IRField:
        unit = f"{declaration.unit_name}.{member.declared_name}"
        directives = DirectiveParser(source=unit).parse(member.raw_annotation)

        nullable = True
        if self.config.strict_nullability:
            nullable = self.type_mapping.is_nullable(member.declared_type)
        ir_field = IRField(
            declared_name=member.declared_name,
            declared_type=member.declared_type,
            output_name=self._field_name(member.declared_name),
            scalar_type=self.type_mapping.map_type(member.declared_type),
            nullable=nullable,
        )

        for directive in directives:
            if directive.name != "GqlField":
                entity.notes.append(
                    ValidationIssue(
                        IssueKind.INVALID_BINDING,
                        f"@{directive.name} is not valid on a field",
                        entity.declared_name,
                        member.declared_name,
                    )
                )
                continue
            self._note_duplicates(entity, directive, member.declared_name)
            self._apply_field_directive(entity, ir_field, directive)
        return ir_field

    def _apply_field_directive(
        self, entity: IREntity, ir_field: IRField, directive: Directive, positional_name: bool = True
    ):
        """Normalize one GqlField directive (tag or comment form) into rules."""
        options = directive.options()
        if positional_name and options and directive.arguments:
            first = directive.arguments[0]
            if first.is_flag and not is_flag_option(first.key) and first in options:
                options.remove(first)
                if first.key == "-":
                    ir_field.rules.append(PolicyRule(Concern.INCLUSION, False, None, "-"))
                else:
                    ir_field.output_name = first.key

        for argument in options:
            rule_or_issue = self._normalize_option(argument)
            if isinstance(rule_or_issue, PolicyRule):
                ir_field.rules.append(rule_or_issue)
            elif rule_or_issue is True:
                ir_field.force_resolver = True
            else:
                entity.notes.append(
                    ValidationIssue(
                        IssueKind.UNKNOWN_OPTION,
                        rule_or_issue,
                        entity.declared_name,
                        ir_field.declared_name,
                    )
                )

    @staticmethod
    def _normalize_option(argument: DirectiveArgument) -> PolicyRule | bool | str:
        """Turn one argument into a rule; True for forceResolver, or an issue message."""
        key = argument.key.lower()

        if key in FORCE_RESOLVER_OPTIONS:
            return True

        if key in ACCESS_OPTIONS or key in INCLUSION_OPTIONS or key in REQUIRED_OPTIONS:
            if key in ACCESS_OPTIONS:
                concern, value = Concern.ACCESS, ACCESS_OPTIONS[key]
            elif key in INCLUSION_OPTIONS:
                concern, value = Concern.INCLUSION, INCLUSION_OPTIONS[key]
            else:
                concern, value = Concern.REQUIRED, REQUIRED_OPTIONS[key]
            views = argument.items() + (argument.qualifier or ())
            return PolicyRule(concern, value, _scope(views), key)

        if key in TEXT_OPTIONS:
            concern = TEXT_OPTIONS[key]
            text = argument.text()
            if text is None:
                if concern is not Concern.DEPRECATED:
                    return f"Option '{argument.key}' requires a value"
                text = ""
            return PolicyRule(concern, text, _scope(argument.qualifier or ()), key)

        return f"Unknown option '{argument.key}'"

    def _build_extra_field(self, entity: IREntity, directive: Directive) -> IRField | None:
        """Synthesize a field from @GqlTypeExtraField / @GqlInputExtraField."""
        name_arg = directive.get("name")
        name = name_arg.text() if name_arg else None
        if not name:
            entity.notes.append(
                ValidationIssue(
                    IssueKind.INVALID_BINDING,
                    f"@{directive.name} requires a name",
                    entity.declared_name,
                )
            )
            return None

        type_arg = directive.get("type")
        type_name = (type_arg.text() if type_arg else None) or "String"
        ir_field = IRField(
            declared_name=name,
            declared_type=type_name,
            output_name=name,
            scalar_type=type_name,
            is_extra=True,
            rules=[PolicyRule(Concern.ACCESS, EXTRA_FIELD_ACCESS[directive.name], None, directive.name)],
        )
        remaining = [a for a in directive.arguments if a.key.lower() not in ("name", "type")]
        options = Directive(directive.name, tuple(remaining), directive.position)
        self._apply_field_directive(entity, ir_field, options, positional_name=False)
        return ir_field

    # Enum values

    def _build_enum_value(
        self, entity: IREntity, member: MemberDeclaration, declaration: EntityDeclaration
    ) -> IREnumValue | None:
        unit = f"{declaration.unit_name}.{member.declared_name}"
        literal = member.value if member.value is not None else member.declared_name
        value = IREnumValue(
            name=self._enum_value_name(member.value, member.declared_name, entity.declared_name),
            literal=literal,
            declared_name=member.declared_name,
        )

        for directive in DirectiveParser(source=unit).parse(member.raw_annotation):
            if directive.name != "GqlEnumValue":
                entity.notes.append(
                    ValidationIssue(
                        IssueKind.INVALID_BINDING,
                        f"@{directive.name} is not valid on an enum value",
                        entity.declared_name,
                        member.declared_name,
                    )
                )
                continue
            self._note_duplicates(entity, directive, member.declared_name)
            for argument in directive.options():
                key = argument.key.lower()
                if key == "deprecated":
                    value.deprecated = argument.text() or ""
                elif key == "description" and argument.text():
                    value.description = argument.text()
                elif key == "name" and argument.text():
                    value.name = argument.text()
                elif key in ("omit", "ignore") and argument.is_flag:
                    value.omitted = True
                else:
                    entity.notes.append(
                        ValidationIssue(
                            IssueKind.UNKNOWN_OPTION,
                            f"Unknown option '{argument.key}' on @GqlEnumValue",
                            entity.declared_name,
                            member.declared_name,
                        )
                    )

        if value.omitted:
            return None
        return value

    @staticmethod
    def _enum_value_name(literal: str | None, declared_name: str, type_name: str) -> str:
        """GraphQL name for an enum constant.

        A string literal is used when it can be a GraphQL name; otherwise the
        constant name without its type prefix, in UPPER_SNAKE_CASE.
        """
        candidate = re.sub(r"[\s\-.]+", "_", literal.strip()) if literal else ""
        if candidate and _GRAPHQL_NAME.match(candidate):
            return candidate.upper()
        name = declared_name
        if name.startswith(type_name) and len(name) > len(type_name):
            name = name[len(type_name):]
        return upper_snake_case(name)


def _scope(views: tuple[str, ...]) -> tuple[str, ...] | None:
    """Qualifier tuple, or None for entity-wide ('*' or empty list)."""
    if not views or "*" in views:
        return None
    return tuple(dict.fromkeys(views))


def _display(value) -> str:
    if isinstance(value, Access):
        return value.value
    return "required" if value else "optional"
