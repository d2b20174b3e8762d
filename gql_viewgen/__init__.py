"""GraphQL view synthesis from annotated type declarations."""

__version__ = "0.1.0"
