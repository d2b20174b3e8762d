"""Generator configuration.

Settings may be given in code or loaded from a TOML or JSON file:

    # gql-viewgen.toml
    field_case = "camel"
    input_suffix = "Input"

    [type_map]
    "decimal.Decimal" = "Decimal"
"""

import json
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .scalars import TypeMapping


class GeneratorConfig(BaseModel):
    """Options controlling how declarations become schema text."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Declared type -> GraphQL type, merged over the built-in table
    type_map: dict[str, str] = Field(default_factory=dict)
    field_case: Literal["camel", "snake", "keep"] = "camel"
    input_suffix: str = "Input"
    # Entities without any entity-level directive bind their declared name
    implicit_bindings: bool = True
    strict_nullability: bool = False
    emit_scalars: bool = True
    header: str | None = None
    max_workers: int | None = Field(default=None, ge=1)

    def type_mapping(self) -> TypeMapping:
        """Build the type mapping registry for this configuration."""
        return TypeMapping(self.type_map)


def load_config(path: str | Path) -> GeneratorConfig:
    """Load a configuration file (.toml or .json).

    A pyproject.toml is read from its ``[tool.gql-viewgen]`` table.
    """
    path = Path(path)
    try:
        if path.suffix == ".json":
            data = json.loads(path.read_text())
        else:
            with open(path, "rb") as f:
                data = tomllib.load(f)
            if path.name == "pyproject.toml":
                data = data.get("tool", {}).get("gql-viewgen", {})
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}:\n{e}") from e
