"""End-to-end schema pipeline.

    declarations -> parse/build (thread pool) -> barrier -> resolve
                 -> validate -> pre-emit hooks -> emit -> post-emit hooks -> text

Parsing and building are independent per declaration and run concurrently.
Results are ordered by declaration index once every unit has finished, so
the output never depends on completion order. After the barrier the model is
only read.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional

from .builder import EntityBuilder
from .config import GeneratorConfig
from .declarations import EntityDeclaration
from .errors import DirectiveSyntaxError, DirectiveSyntaxErrors, SchemaValidationError
from .generator import SchemaEmitter
from .hooks import AddHeaderHook, HookRunner
from .ir import IREntity, IRSchema, ValidationIssue
from .resolver import ViewResolver
from .validator import SchemaValidator

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Output of a successful run."""
    text: str
    schema: IRSchema
    warnings: list[ValidationIssue] = field(default_factory=list)


class SchemaPipeline:
    """Runs declarations through every phase and produces SDL text.

    Example:
        pipeline = SchemaPipeline(GeneratorConfig(input_suffix="Input"))
        result = pipeline.run(load_sources(collect_sources("./models")))
        print(result.text)
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        hooks: Optional[HookRunner] = None,
        template_dir: Optional[str] = None,
    ):
        self.config = config or GeneratorConfig()
        self.hooks = hooks or HookRunner()
        self.template_dir = template_dir
        self.type_mapping = self.config.type_mapping()

    def build(self, declarations: list[EntityDeclaration]) -> list[IREntity]:
        """Parse and build every declaration concurrently.

        Raises:
            DirectiveSyntaxErrors: if any unit had a syntax error; carries all
                of them in declaration order
        """
        builder = EntityBuilder(self.config, self.type_mapping)
        entities: list[IREntity | None] = [None] * len(declarations)
        errors: dict[int, DirectiveSyntaxError] = {}

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(builder.build, declaration, index): index
                for index, declaration in enumerate(declarations)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    entities[index] = future.result()
                except DirectiveSyntaxError as e:
                    errors[index] = e

        if errors:
            raise DirectiveSyntaxErrors([errors[i] for i in sorted(errors)])
        logger.info("Built %d entities", len(entities))
        return entities

    def resolve(self, declarations: list[EntityDeclaration]) -> IRSchema:
        """Build and resolve, without validating."""
        return ViewResolver(self.config, self.type_mapping).resolve(self.build(declarations))

    def check(self, declarations: list[EntityDeclaration]) -> list[ValidationIssue]:
        """Run through validation and return every issue found."""
        return SchemaValidator().validate(self.resolve(declarations))

    def run(self, declarations: list[EntityDeclaration]) -> PipelineResult:
        """Produce the schema text.

        Raises:
            DirectiveSyntaxErrors: on malformed annotations
            SchemaValidationError: on any error-severity issue; nothing is emitted
        """
        schema = self.resolve(declarations)
        issues = SchemaValidator().validate(schema)
        if any(issue.is_error for issue in issues):
            raise SchemaValidationError(issues)
        warnings = [issue for issue in issues if not issue.is_error]

        schema = self.hooks.run_pre_hooks(schema)
        dangling = SchemaValidator().check_type_references(schema)
        if dangling:
            raise SchemaValidationError(dangling)
        text = SchemaEmitter(self.config, self.template_dir).emit(schema)
        text = self.hooks.run_post_hooks(text)
        if self.config.header:
            text = AddHeaderHook(self.config.header).post_emit(text)

        logger.info("Emitted %d view(s) with %d warning(s)", len(schema.views), len(warnings))
        return PipelineResult(text=text, schema=schema, warnings=warnings)


def generate_schema(
    declarations: list[EntityDeclaration], config: Optional[GeneratorConfig] = None
) -> str:
    """Run the whole pipeline and return the SDL text."""
    return SchemaPipeline(config).run(declarations).text
