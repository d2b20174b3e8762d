"""Validator for resolved schemas.

Collects every issue in the model instead of stopping at the first one. Issues
found while building (duplicate arguments, unknown options, misplaced
directives) are carried on the entities and reported here too.
"""

import logging
import re

from .ir import (
    Access,
    Concern,
    EntityKind,
    IREntity,
    IRField,
    IRSchema,
    IssueKind,
    ValidationIssue,
)

logger = logging.getLogger(__name__)

_GRAPHQL_NAME = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")

# Concerns whose values must agree within one scope
_CONFLICT_KINDS = {
    Concern.ACCESS: IssueKind.CONFLICTING_MUTABILITY,
    Concern.INCLUSION: IssueKind.CONFLICTING_INCLUSION,
    Concern.REQUIRED: IssueKind.CONFLICTING_REQUIREDNESS,
}


class SchemaValidator:
    """Checks a resolved schema for referential and policy conflicts.

    Example:
        issues = SchemaValidator().validate(schema)
        errors = [i for i in issues if i.is_error]
    """

    def validate(self, schema: IRSchema) -> list[ValidationIssue]:
        """Return every issue found; an empty list means the schema is valid."""
        issues: list[ValidationIssue] = []
        for entity in schema.entities:
            issues.extend(entity.notes)
        issues.extend(self._check_view_names(schema))

        for entity in schema.entities:
            if entity.ignore_all:
                continue
            for ir_field in entity.fields:
                issues.extend(self._check_references(schema, entity, ir_field))
                conflicts = self._check_conflicts(entity, ir_field)
                issues.extend(conflicts)
                conflicting_views = {
                    i.view for i in conflicts if i.kind is IssueKind.CONFLICTING_MUTABILITY
                }
                issues.extend(self._check_placement(schema, entity, ir_field, conflicting_views))
            issues.extend(self._check_enum_values(entity))

        for view in schema.views.values():
            for view_field in view.fields:
                if not _GRAPHQL_NAME.match(view_field.name):
                    issues.append(
                        ValidationIssue(
                            IssueKind.INVALID_NAME,
                            f"'{view_field.name}' is not a valid GraphQL field name",
                            view.entity.declared_name,
                            view_field.declared_name,
                            view.name,
                        )
                    )
            if not view.members:
                issues.append(
                    ValidationIssue(
                        IssueKind.EMPTY_VIEW,
                        f"View has no {'values' if view.kind is EntityKind.ENUM else 'fields'}",
                        view.entity.declared_name,
                        view=view.name,
                    )
                )

        errors = sum(1 for i in issues if i.is_error)
        logger.info("Validation found %d error(s), %d warning(s)", errors, len(issues) - errors)
        return issues

    def check_type_references(self, schema: IRSchema) -> list[ValidationIssue]:
        """Find view fields whose type is a binding missing from ``schema.views``.

        Resolution only produces such references when views are dropped after
        validation, e.g. by a pre-emit hook.
        """
        bound = {b.name for entity in schema.entities for b in entity.bindings}
        issues = []
        for view in schema.views.values():
            for view_field in view.fields:
                type_name = view_field.type_name.strip("[]!")
                if type_name in bound and type_name not in schema.views:
                    issues.append(
                        ValidationIssue(
                            IssueKind.UNKNOWN_VIEW_REFERENCE,
                            f"Field type refers to view '{type_name}', which is not emitted",
                            view.entity.declared_name,
                            view_field.declared_name,
                            view.name,
                        )
                    )
        return issues

    @staticmethod
    def _check_view_names(schema: IRSchema) -> list[ValidationIssue]:
        issues = []
        for entity in schema.entities:
            if entity.ignore_all:
                continue
            for binding in entity.bindings:
                if not _GRAPHQL_NAME.match(binding.name):
                    issues.append(
                        ValidationIssue(
                            IssueKind.INVALID_NAME,
                            f"'{binding.name}' is not a valid GraphQL type name",
                            entity.declared_name,
                            view=binding.name,
                        )
                    )
        for entity, binding in schema.collisions:
            owner = schema.views[binding.name].entity
            if owner is entity:
                message = f"'{binding.name}' is bound more than once by {entity.declared_name}"
            else:
                message = f"'{binding.name}' is already bound by {owner.declared_name}"
            issues.append(
                ValidationIssue(
                    IssueKind.DUPLICATE_VIEW_NAME, message, entity.declared_name, view=binding.name
                )
            )
        return issues

    @staticmethod
    def _check_references(
        schema: IRSchema, entity: IREntity, ir_field: IRField
    ) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                IssueKind.UNKNOWN_VIEW_REFERENCE,
                f"References view '{view_name}', which no entity produces",
                entity.declared_name,
                ir_field.declared_name,
                view_name,
            )
            for view_name in ir_field.referenced_views
            if view_name not in schema.views
        ]

    @staticmethod
    def _check_conflicts(entity: IREntity, ir_field: IRField) -> list[ValidationIssue]:
        """Find scopes where two rules of one concern disagree."""
        scopes: dict[tuple[Concern, str | None], dict] = {}
        for rule in ir_field.rules:
            if rule.concern not in _CONFLICT_KINDS:
                continue
            for scope in rule.views or (None,):
                scopes.setdefault((rule.concern, scope), {}).setdefault(rule.value, rule.option)

        issues = []
        for (concern, scope), values in scopes.items():
            if len(values) < 2:
                continue
            options = " and ".join(f"'{option}'" for option in values.values())
            if scope is None:
                views = [b.name for b in entity.bindings if b.kind is not EntityKind.ENUM] or [None]
                message = f"Conflicting {options} for all views"
            else:
                views = [scope]
                message = f"Conflicting {options}"
            for view_name in views:
                issues.append(
                    ValidationIssue(
                        _CONFLICT_KINDS[concern],
                        message,
                        entity.declared_name,
                        ir_field.declared_name,
                        view_name,
                    )
                )
        return issues

    @staticmethod
    def _check_placement(
        schema: IRSchema, entity: IREntity, ir_field: IRField, skip_views: set
    ) -> list[ValidationIssue]:
        """Flag fields explicitly placed in a view their access excludes them from."""
        issues = []
        for view in schema.views_of(entity):
            if view.name in skip_views or view.kind is EntityKind.ENUM:
                continue
            if not ir_field.names_view(view.name):
                continue
            policy = ir_field.policy_for(view.name, entity.field_defaults)
            if policy.included is False:
                continue
            if view.kind is EntityKind.INPUT and policy.access is Access.READ_ONLY:
                issues.append(
                    ValidationIssue(
                        IssueKind.READ_ONLY_IN_INPUT,
                        "Read-only field is explicitly placed in an input view",
                        entity.declared_name,
                        ir_field.declared_name,
                        view.name,
                    )
                )
            elif view.kind is EntityKind.OBJECT and policy.access is Access.WRITE_ONLY:
                issues.append(
                    ValidationIssue(
                        IssueKind.WRITE_ONLY_IN_OBJECT,
                        "Write-only field is explicitly placed in an object view",
                        entity.declared_name,
                        ir_field.declared_name,
                        view.name,
                    )
                )
        return issues

    @staticmethod
    def _check_enum_values(entity: IREntity) -> list[ValidationIssue]:
        issues = []
        view_name = entity.bindings[0].name if entity.bindings else None
        seen: dict[str, str] = {}
        for value in entity.values:
            if not _GRAPHQL_NAME.match(value.name):
                issues.append(
                    ValidationIssue(
                        IssueKind.INVALID_NAME,
                        f"'{value.name}' is not a valid GraphQL enum value",
                        entity.declared_name,
                        value.declared_name,
                        view_name,
                    )
                )
            if value.name in seen:
                issues.append(
                    ValidationIssue(
                        IssueKind.DUPLICATE_ENUM_VALUE,
                        f"Enum value '{value.name}' is also declared by {seen[value.name]}",
                        entity.declared_name,
                        value.declared_name,
                        view_name,
                    )
                )
            else:
                seen[value.name] = value.declared_name
        return issues


def validate(schema: IRSchema) -> list[ValidationIssue]:
    """Validate a resolved schema. See ``SchemaValidator``."""
    return SchemaValidator().validate(schema)
