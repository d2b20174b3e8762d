"""View resolver.

Computes, for every output-name binding across all built entities, the view
it produces: which fields appear and with what name, type, requiredness,
mutability and metadata.

Precedence for every per-field setting is "most specific wins": a rule
qualified with the view, then the field's unqualified rule, then the entity
default carried on a binding directive, then the built-in default.
"""

import logging
import re

from .config import GeneratorConfig
from .ir import (
    Access,
    EntityKind,
    InclusionMode,
    IREntity,
    IRField,
    IRSchema,
    IRView,
    IRViewField,
)
from .scalars import TypeMapping

logger = logging.getLogger(__name__)

# Leading list brackets, the named type, then any trailing ']' / '!'
_TYPE_REF = re.compile(r"^(\[*)([_A-Za-z][_0-9A-Za-z]*)(.*)$")


def inclusion_mode(entity: IREntity, view: IRView) -> InclusionMode:
    """Decide once, before fields are walked, how a view includes fields.

    A view is opt-in when its entity binds two or more views of the same
    kind (divergent siblings) and some field names this view through a
    qualified ``include`` or access rule.
    """
    if len(entity.bindings_of(view.kind)) < 2:
        return InclusionMode.OPT_OUT
    if any(f.names_view(view.name) for f in entity.fields):
        return InclusionMode.OPT_IN
    return InclusionMode.OPT_OUT


class ViewResolver:
    """Resolves built entities into per-view projections.

    Example:
        resolver = ViewResolver(config)
        schema = resolver.resolve(entities)
        schema.views["PublicView"].fields
    """

    def __init__(self, config: GeneratorConfig | None = None, type_mapping: TypeMapping | None = None):
        self.config = config or GeneratorConfig()
        self.type_mapping = type_mapping or self.config.type_mapping()

    def resolve(self, entities: list[IREntity]) -> IRSchema:
        """Resolve every view produced by the given entities."""
        ordered = sorted(entities, key=lambda e: e.order)
        schema = IRSchema(entities=ordered)

        for entity in ordered:
            if entity.ignore_all:
                continue
            for binding in entity.bindings:
                if binding.name in schema.views:
                    schema.collisions.append((entity, binding))
                    continue
                schema.views[binding.name] = IRView(
                    name=binding.name,
                    kind=binding.kind,
                    entity=entity,
                    binding=binding,
                )

        type_index: dict[str, IREntity] = {}
        for entity in ordered:
            if not entity.ignore_all and entity.bindings:
                type_index.setdefault(entity.declared_name, entity)

        custom_scalars = self.type_mapping.custom_scalars()
        used_scalars: set[str] = set()
        for view in schema.views.values():
            entity = view.entity
            if view.kind is EntityKind.ENUM:
                view.values = list(entity.values)
                continue
            view.inclusion_mode = inclusion_mode(entity, view)
            for ir_field in entity.fields:
                resolved = self.resolve_field(ir_field, entity, view, type_index)
                if resolved is None:
                    continue
                view.fields.append(resolved)
                base = _TYPE_REF.match(resolved.type_name)
                if base and base.group(2) in custom_scalars:
                    used_scalars.add(base.group(2))
            logger.debug(
                "Resolved view %s (%s, %s): %s",
                view.name, view.kind.value, view.inclusion_mode.value,
                ", ".join(f.name for f in view.fields),
            )

        schema.scalars = sorted(used_scalars)
        logger.info("Resolved %d view(s) from %d entities", len(schema.views), len(ordered))
        return schema

    def resolve_field(
        self,
        ir_field: IRField,
        entity: IREntity,
        view: IRView,
        type_index: dict[str, IREntity] | None = None,
    ) -> IRViewField | None:
        """Project one field into a view, or None if the view excludes it."""
        policy = ir_field.policy_for(view.name, entity.field_defaults)

        if policy.included is False:
            return None
        if (
            view.inclusion_mode is InclusionMode.OPT_IN
            and ir_field.is_constrained
            and not ir_field.targets(view.name)
        ):
            return None

        access = policy.access or Access.READ_WRITE
        if view.kind is EntityKind.INPUT and access is Access.READ_ONLY:
            return None
        if view.kind is EntityKind.OBJECT and access is Access.WRITE_ONLY:
            return None

        required = policy.required if policy.required is not None else not ir_field.nullable
        type_name = self._type_ref(policy.type_name or ir_field.scalar_type, view.kind, type_index or {})
        return IRViewField(
            name=policy.name or ir_field.output_name,
            declared_name=ir_field.declared_name,
            type_name=type_name,
            required=required,
            access=access,
            description=policy.description,
            deprecated=policy.deprecated,
            force_resolver=ir_field.force_resolver and view.kind is EntityKind.OBJECT,
        )

    @staticmethod
    def _type_ref(type_name: str, kind: EntityKind, type_index: dict[str, IREntity]) -> str:
        """Rewrite a reference to a declared entity to that entity's output name.

        Enums use their first enum binding; objects use their first input
        binding inside input views and their first object binding elsewhere.
        """
        match = _TYPE_REF.match(type_name)
        if not match:
            return type_name
        prefix, name, suffix = match.groups()
        target = type_index.get(name)
        if target is None:
            return type_name
        if target.kind is EntityKind.ENUM:
            candidates = target.bindings_of(EntityKind.ENUM)
        else:
            preferred = EntityKind.INPUT if kind is EntityKind.INPUT else EntityKind.OBJECT
            candidates = target.bindings_of(preferred) or target.bindings
        if not candidates:
            return type_name
        return f"{prefix}{candidates[0].name}{suffix}"


def resolve(entities: list[IREntity], config: GeneratorConfig | None = None) -> IRSchema:
    """Resolve entities into views. See ``ViewResolver``."""
    return ViewResolver(config).resolve(entities)
