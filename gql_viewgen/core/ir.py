"""Intermediate Representation (IR) for annotated declarations and their views.

This module defines the canonical model built from annotations (entities,
fields, enum values), the per-view projections derived from it, and the
issues the validator reports about them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EntityKind(str, Enum):
    """Kind of an emitted GraphQL definition."""
    OBJECT = "object"
    INPUT = "input"
    ENUM = "enum"

    @property
    def keyword(self) -> str:
        """SDL keyword used to emit a view of this kind."""
        return {"object": "type", "input": "input", "enum": "enum"}[self.value]


class Access(str, Enum):
    """Resolved mutability of a field within one view."""
    READ_ONLY = "ro"
    WRITE_ONLY = "wo"
    READ_WRITE = "rw"


class InclusionMode(str, Enum):
    """Whether a view lists fields unless omitted, or only when included."""
    OPT_OUT = "opt-out"
    OPT_IN = "opt-in"


class Concern(str, Enum):
    """The aspect of a field a policy rule controls."""
    INCLUSION = "included"
    ACCESS = "access"
    REQUIRED = "required"
    NAME = "name"
    TYPE = "type_name"
    DESCRIPTION = "description"
    DEPRECATED = "deprecated"


@dataclass(frozen=True)
class PolicyRule:
    """One normalized field directive.

    ``views`` is None for an entity-wide rule, otherwise the qualifier list
    the rule is scoped to. ``option`` keeps the spelling that produced the
    rule so issues can quote it back.
    """
    concern: Concern
    value: Any
    views: tuple[str, ...] | None = None
    option: str = field(default="", compare=False)

    @property
    def is_qualified(self) -> bool:
        return self.views is not None


@dataclass
class FieldPolicy:
    """Effective settings of a field for one scope. None means unset."""
    included: bool | None = None
    access: Access | None = None
    required: bool | None = None
    name: str | None = None
    type_name: str | None = None
    description: str | None = None
    # "" marks a deprecation without a reason
    deprecated: str | None = None

    def apply(self, rule: PolicyRule):
        """Record a rule; later rules for the same concern replace earlier ones."""
        setattr(self, rule.concern.value, rule.value)

    def merged_over(self, base: "FieldPolicy") -> "FieldPolicy":
        """Return a policy taking values from self, falling back to ``base``."""
        merged = FieldPolicy()
        for concern in Concern:
            own = getattr(self, concern.value)
            setattr(merged, concern.value, own if own is not None else getattr(base, concern.value))
        return merged


@dataclass
class IRField:
    """A member of an object or input entity."""
    declared_name: str
    declared_type: str
    output_name: str
    scalar_type: str
    nullable: bool = True
    rules: list[PolicyRule] = field(default_factory=list)
    force_resolver: bool = False
    # Synthesized from a Gql*ExtraField directive rather than declared
    is_extra: bool = False

    @property
    def default_policy(self) -> FieldPolicy:
        """Policy from rules without a view qualifier."""
        policy = FieldPolicy()
        for rule in self.rules:
            if rule.views is None:
                policy.apply(rule)
        return policy

    @property
    def view_policies(self) -> dict[str, FieldPolicy]:
        """Map of view name to the policy set by rules qualified with it."""
        policies: dict[str, FieldPolicy] = {}
        for rule in self.rules:
            for view_name in rule.views or ():
                policies.setdefault(view_name, FieldPolicy()).apply(rule)
        return policies

    def policy_for(self, view_name: str, entity_defaults: FieldPolicy | None = None) -> FieldPolicy:
        """Effective policy for a view: qualified, then field-wide, then entity defaults."""
        policy = self.view_policies.get(view_name, FieldPolicy()).merged_over(self.default_policy)
        if entity_defaults is not None:
            policy = policy.merged_over(entity_defaults)
        return policy

    def names_view(self, view_name: str) -> bool:
        """True if a qualified ``include`` or access rule names the view."""
        for rule in self.rules:
            if not rule.views or view_name not in rule.views:
                continue
            if rule.concern is Concern.ACCESS or (rule.concern is Concern.INCLUSION and rule.value):
                return True
        return False

    def targets(self, view_name: str) -> bool:
        """Check whether the field explicitly opts into a view.

        Either a qualified rule names the view, or a bare ``include``
        opts the field into every view.
        """
        if self.names_view(view_name):
            return True
        return any(
            r.concern is Concern.INCLUSION and r.value and r.views is None for r in self.rules
        )

    @property
    def is_constrained(self) -> bool:
        """True if any inclusion or access rule is declared on the field."""
        return any(r.concern in (Concern.INCLUSION, Concern.ACCESS) for r in self.rules)

    @property
    def referenced_views(self) -> list[str]:
        """View names named by any qualifier, in first-seen order."""
        seen: dict[str, None] = {}
        for rule in self.rules:
            for view_name in rule.views or ():
                seen.setdefault(view_name, None)
        return list(seen)


@dataclass
class IREnumValue:
    """A single constant of an enum entity."""
    name: str
    literal: str
    declared_name: str = ""
    deprecated: str | None = None
    description: str | None = None
    omitted: bool = False


@dataclass
class IRBinding:
    """An output name an entity is emitted under.

    Every binding becomes an independent view sharing the entity's fields.
    """
    name: str
    kind: EntityKind
    description: str | None = None
    position: int = 0


@dataclass
class IREntity:
    """Canonical record of one declared object, input or enum."""
    kind: EntityKind
    declared_name: str
    bindings: list[IRBinding] = field(default_factory=list)
    ignore_all: bool = False
    fields: list[IRField] = field(default_factory=list)
    values: list[IREnumValue] = field(default_factory=list)
    # Entity-wide field defaults carried by binding directives
    field_defaults: FieldPolicy = field(default_factory=FieldPolicy)
    order: int = 0
    source: str | None = None
    # Set by @GqlNamespace; grouping metadata only, views are not renamed
    namespace: str | None = None
    # Findings only visible while building (duplicate arguments, unknown options)
    notes: list["ValidationIssue"] = field(default_factory=list)

    def bindings_of(self, kind: EntityKind) -> list[IRBinding]:
        """Return bindings of the given kind in declaration order."""
        return [b for b in self.bindings if b.kind is kind]


@dataclass(frozen=True)
class IRViewField:
    """A field as it appears in one view."""
    name: str
    declared_name: str
    type_name: str
    required: bool
    access: Access
    description: str | None = None
    deprecated: str | None = None
    force_resolver: bool = False

    @property
    def type_ref(self) -> str:
        """GraphQL type reference including the non-null marker."""
        if self.required and not self.type_name.endswith("!"):
            return f"{self.type_name}!"
        return self.type_name


@dataclass
class IRView:
    """A named projection of an entity, emitted as one schema definition."""
    name: str
    kind: EntityKind
    entity: IREntity
    binding: IRBinding
    inclusion_mode: InclusionMode = InclusionMode.OPT_OUT
    fields: list[IRViewField] = field(default_factory=list)
    values: list[IREnumValue] = field(default_factory=list)

    @property
    def description(self) -> str | None:
        return self.binding.description

    @property
    def members(self) -> list:
        """Fields for object/input views, values for enum views."""
        return self.values if self.kind is EntityKind.ENUM else self.fields

    def get_field(self, name: str) -> IRViewField | None:
        """Look up a resolved field by output or declared name."""
        for view_field in self.fields:
            if name in (view_field.name, view_field.declared_name):
                return view_field
        return None


@dataclass
class IRSchema:
    """Complete resolved model: entities, their views and custom scalars."""
    entities: list[IREntity] = field(default_factory=list)
    views: dict[str, IRView] = field(default_factory=dict)
    # Bindings whose name was already taken by an earlier binding
    collisions: list[tuple[IREntity, IRBinding]] = field(default_factory=list)
    scalars: list[str] = field(default_factory=list)

    def get_view(self, name: str) -> IRView | None:
        return self.views.get(name)

    def views_of(self, entity: IREntity) -> list[IRView]:
        """Views produced by an entity, in binding order."""
        return [v for v in self.views.values() if v.entity is entity]

    @property
    def view_names(self) -> list[str]:
        return list(self.views)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class IssueKind(str, Enum):
    """Every class of problem the validator can report."""
    UNKNOWN_VIEW_REFERENCE = "UnknownViewReference"
    CONFLICTING_MUTABILITY = "ConflictingMutability"
    READ_ONLY_IN_INPUT = "ReadOnlyInInput"
    WRITE_ONLY_IN_OBJECT = "WriteOnlyInObject"
    DUPLICATE_ENUM_VALUE = "DuplicateEnumValue"
    DUPLICATE_VIEW_NAME = "DuplicateViewName"
    CONFLICTING_INCLUSION = "ConflictingInclusion"
    CONFLICTING_REQUIREDNESS = "ConflictingRequiredness"
    INVALID_BINDING = "InvalidBinding"
    INVALID_NAME = "InvalidName"
    # Warnings
    DUPLICATE_ARGUMENT = "DuplicateArgument"
    UNKNOWN_OPTION = "UnknownOption"
    OVERRIDDEN_ENTITY_DEFAULT = "OverriddenEntityDefault"
    EMPTY_VIEW = "EmptyView"

    @property
    def severity(self) -> Severity:
        if self in _WARNING_KINDS:
            return Severity.WARNING
        return Severity.ERROR


_WARNING_KINDS = {
    IssueKind.DUPLICATE_ARGUMENT,
    IssueKind.UNKNOWN_OPTION,
    IssueKind.OVERRIDDEN_ENTITY_DEFAULT,
    IssueKind.EMPTY_VIEW,
}


@dataclass(frozen=True)
class ValidationIssue:
    """A problem found in the model, identified by entity, field and view."""
    kind: IssueKind
    message: str
    entity: str
    field_name: str | None = None
    view: str | None = None

    @property
    def severity(self) -> Severity:
        return self.kind.severity

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    @property
    def location(self) -> str:
        """Human-readable 'Entity.field [view]' identity."""
        where = self.entity
        if self.field_name:
            where += f".{self.field_name}"
        if self.view:
            where += f" [{self.view}]"
        return where

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.kind.value}: {self.location}: {self.message}"
