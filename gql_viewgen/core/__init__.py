"""Core modules for GraphQL view synthesis."""

from .builder import EntityBuilder
from .config import GeneratorConfig, load_config
from .declarations import (
    EntityDeclaration,
    GoExtractor,
    MemberDeclaration,
    collect_sources,
    extract_go_declarations,
    load_declarations,
    load_sources,
    parse_declarations,
)
from .errors import (
    ConfigError,
    DeclarationError,
    DirectiveSyntaxError,
    DirectiveSyntaxErrors,
    GqlViewgenError,
    SchemaValidationError,
)
from .generator import SchemaEmitter, emit
from .hooks import (
    AddHeaderHook,
    FilterViewsHook,
    HookRunner,
    PostEmitHook,
    PreEmitHook,
)
from .ir import (
    Access,
    EntityKind,
    InclusionMode,
    IRBinding,
    IREntity,
    IREnumValue,
    IRField,
    IRSchema,
    IRView,
    IRViewField,
    IssueKind,
    PolicyRule,
    Severity,
    ValidationIssue,
)
from .parser import Directive, DirectiveArgument, DirectiveParser, parse
from .pipeline import PipelineResult, SchemaPipeline, generate_schema
from .resolver import ViewResolver, resolve
from .scalars import TypeMapping
from .validator import SchemaValidator, validate

__all__ = [
    # Declarations
    "EntityDeclaration",
    "MemberDeclaration",
    "GoExtractor",
    "collect_sources",
    "extract_go_declarations",
    "load_declarations",
    "load_sources",
    "parse_declarations",
    # Config
    "GeneratorConfig",
    "load_config",
    "TypeMapping",
    # Errors
    "GqlViewgenError",
    "DirectiveSyntaxError",
    "DirectiveSyntaxErrors",
    "SchemaValidationError",
    "DeclarationError",
    "ConfigError",
    # Parser
    "Directive",
    "DirectiveArgument",
    "DirectiveParser",
    "parse",
    # IR types
    "Access",
    "EntityKind",
    "InclusionMode",
    "IRBinding",
    "IREntity",
    "IREnumValue",
    "IRField",
    "IRSchema",
    "IRView",
    "IRViewField",
    "IssueKind",
    "PolicyRule",
    "Severity",
    "ValidationIssue",
    # Phases
    "EntityBuilder",
    "ViewResolver",
    "resolve",
    "SchemaValidator",
    "validate",
    "SchemaEmitter",
    "emit",
    # Hooks
    "PreEmitHook",
    "PostEmitHook",
    "AddHeaderHook",
    "FilterViewsHook",
    "HookRunner",
    # Pipeline
    "PipelineResult",
    "SchemaPipeline",
    "generate_schema",
]
