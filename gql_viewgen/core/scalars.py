"""Declared-type to GraphQL type mapping.

Maps the host-language types found on declarations (Go types, as produced by
the extractor) to GraphQL type references. Nothing is inferred beyond this
table: unknown named types pass through as references to other definitions.

Example usage:
    from gql_viewgen.core.scalars import TypeMapping

    mapping = TypeMapping()
    mapping.register("decimal.Decimal", "Decimal")

    mapping.map_type("*time.Time")   # "Time"
    mapping.map_type("[]string")     # "[String]"
    mapping.custom_scalars()         # {"Decimal", "Map", "Time", "UUID", ...}
"""

import re

BUILTIN_SCALARS = frozenset({"String", "Int", "Float", "Boolean", "ID"})

DEFAULT_TYPE_MAP = {
    "string": "String",
    "bool": "Boolean",
    "int": "Int",
    "int8": "Int",
    "int16": "Int",
    "int32": "Int",
    "int64": "Int",
    "uint": "Int",
    "uint8": "Int",
    "uint16": "Int",
    "uint32": "Int",
    "uint64": "Int",
    "byte": "Int",
    "rune": "Int",
    "float32": "Float",
    "float64": "Float",
    "[]byte": "String",
    "time.Time": "Time",
    "time.Duration": "Int",
    "uuid.UUID": "UUID",
    "any": "Map",
    "interface{}": "Map",
    "json.RawMessage": "Map",
}

_MAP_TYPE = re.compile(r"^map\[[^\]]*\]")
_NILABLE_TYPES = frozenset({"any", "interface{}", "error", "json.RawMessage"})


class TypeMapping:
    """Registry of declared type → GraphQL type rules.

    Manages the built-in Go defaults plus any configured overrides.

    Example:
        mapping = TypeMapping({"decimal.Decimal": "Decimal"})
        mapping.get("decimal.Decimal")  # "Decimal"
    """

    def __init__(self, overrides: dict[str, str] | None = None):
        self._types: dict[str, str] = {}
        # Register default mappings
        self._register_defaults()
        for declared, graphql in (overrides or {}).items():
            self.register(declared, graphql)

    def _register_defaults(self):
        """Register built-in Go type mappings."""
        for declared, graphql in DEFAULT_TYPE_MAP.items():
            self.register(declared, graphql)

    def register(self, declared_type: str, graphql_type: str):
        """Register a mapping for a declared type."""
        self._types[declared_type] = graphql_type

    def get(self, declared_type: str) -> str | None:
        """Get the GraphQL type for an exact declared type, or None."""
        return self._types.get(declared_type)

    def has(self, declared_type: str) -> bool:
        return declared_type in self._types

    def map_type(self, declared_type: str) -> str:
        """Map a declared type expression to a GraphQL type reference.

        Pointers unwrap, slices and arrays become lists, maps become the
        mapping for ``any``, and unknown names lose their package qualifier.
        """
        declared = declared_type.strip()
        if declared in self._types:
            return self._types[declared]
        if declared.startswith("*"):
            return self.map_type(declared[1:])
        if declared.startswith("[]"):
            return f"[{self.map_type(declared[2:])}]"
        if declared.startswith("[") and "]" in declared:
            # fixed-size array
            return f"[{self.map_type(declared[declared.index(']') + 1:])}]"
        if _MAP_TYPE.match(declared):
            return self._types.get("any", "Map")
        return declared.rsplit(".", 1)[-1]

    def is_nullable(self, declared_type: str) -> bool:
        """Whether a declared type can hold nil.

        Only consulted when strict nullability is configured.
        """
        declared = declared_type.strip()
        return declared.startswith(("*", "[]", "map[")) or declared in _NILABLE_TYPES

    def custom_scalars(self) -> set[str]:
        """GraphQL targets of registered mappings that are not built-in scalars."""
        return {t.strip("[]!") for t in self._types.values()} - BUILTIN_SCALARS
