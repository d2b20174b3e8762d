"""Schema emitter for resolved views.

Renders Jinja2 templates to produce GraphQL SDL from the resolved IR.

Supports custom templates via the template_dir parameter:
    emitter = SchemaEmitter(template_dir="./my_templates")

Template lookup order:
1. User's template directory (if provided)
2. Package default templates
"""

import json
from pathlib import Path
from typing import Optional

from graphql import GraphQLError, parse
from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, select_autoescape

from .config import GeneratorConfig
from .ir import IRSchema

SCHEMA_TEMPLATE = "schema.graphql.j2"


def graphql_string(text: str) -> str:
    """Quote text as a GraphQL string literal."""
    return json.dumps(text, ensure_ascii=False)


def description(text: str) -> str:
    """Render a description, as a block string where that is unambiguous."""
    if not text:
        return ""
    if "\n" in text or text.endswith('"'):
        return graphql_string(text)
    return '"""' + text.replace('"""', '\\"""') + '"""'


def deprecation(reason: str | None) -> str:
    """Render the trailing @deprecated directive, or nothing."""
    if reason is None:
        return ""
    if not reason:
        return " @deprecated"
    return f" @deprecated(reason: {graphql_string(reason)})"


class SchemaEmitter:
    """Generates SDL text from a resolved schema.

    Emission order is the order of ``schema.views``: entity declaration
    order, then binding order. The emitter makes no decisions beyond
    formatting.

    Templates in template_dir take precedence over built-in templates.

    Available templates to override:
        - schema.graphql.j2: the whole schema document
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        template_dir: Optional[str] = None,
    ):
        """Initialize the emitter.

        Args:
            config: Generator configuration (controls scalar declarations)
            template_dir: Optional directory with custom Jinja2 templates.
                          Templates here override the built-in templates.
        """
        self.config = config or GeneratorConfig()
        self.template_dir = template_dir

        # Build template loader - custom templates take precedence
        loaders = []
        if template_dir:
            template_path = Path(template_dir)
            if template_path.is_dir():
                loaders.append(FileSystemLoader(str(template_path)))
        loaders.append(PackageLoader("gql_viewgen", "templates"))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        # Register custom filters
        self.env.filters["graphql_string"] = graphql_string
        self.env.filters["description"] = description
        self.env.filters["deprecation"] = deprecation

    def emit(self, schema: IRSchema) -> str:
        """Render the schema and check that the result is valid SDL.

        Raises:
            ValueError: if the rendered text does not parse as GraphQL
        """
        template = self.env.get_template(SCHEMA_TEMPLATE)
        content = template.render(
            views=list(schema.views.values()),
            scalars=schema.scalars if self.config.emit_scalars else [],
        )

        # Validate GraphQL syntax
        if content.strip():
            try:
                parse(content)
            except GraphQLError as e:
                raise ValueError(
                    f"Generated invalid GraphQL SDL: {e.message}\n"
                    f"Template: {SCHEMA_TEMPLATE}"
                ) from e
        return content


def emit(schema: IRSchema, config: Optional[GeneratorConfig] = None) -> str:
    """Render a resolved schema to SDL text. See ``SchemaEmitter``."""
    return SchemaEmitter(config).emit(schema)
