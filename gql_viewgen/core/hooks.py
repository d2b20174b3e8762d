"""Emission hooks for customizing schema output.

Provides protocols for hooks that can modify the resolved schema before it
is emitted, or transform the SDL text after.

Example usage:
    from gql_viewgen.core.hooks import PreEmitHook, PostEmitHook

    # Pre-emit hook to drop internal views
    class DropInternalViews(PreEmitHook):
        def pre_emit(self, schema):
            schema.views = {k: v for k, v in schema.views.items() if not k.startswith("Internal")}
            return schema

    # Post-emit hook to append a trailer
    class AppendTrailer(PostEmitHook):
        def post_emit(self, content):
            return content + "# end of schema\\n"
"""

from dataclasses import replace
from typing import Protocol, runtime_checkable

from .ir import IRSchema


@runtime_checkable
class PreEmitHook(Protocol):
    """Protocol for pre-emit hooks.

    Pre-emit hooks receive the validated schema before SDL is rendered and
    can modify it. The returned schema is checked for field types that refer
    to views it no longer contains, then emitted.
    """

    def pre_emit(self, schema: IRSchema) -> IRSchema:
        """Called before emission.

        Args:
            schema: The resolved and validated schema

        Returns:
            The (possibly modified) schema to emit
        """
        ...


@runtime_checkable
class PostEmitHook(Protocol):
    """Protocol for post-emit hooks.

    Post-emit hooks receive the rendered SDL and can transform it before it
    is returned or written to disk.
    """

    def post_emit(self, content: str) -> str:
        """Called after emission.

        Args:
            content: The rendered SDL text

        Returns:
            The (possibly transformed) text
        """
        ...


class AddHeaderHook:
    """Built-in hook to add a comment header to the schema.

    Each header line becomes a ``#`` comment, so the output stays valid SDL.

    Example:
        hook = AddHeaderHook("Code generated by gql-viewgen. DO NOT EDIT.")
    """

    def __init__(self, header: str):
        self.header = header

    def post_emit(self, content: str) -> str:
        """Add the header to the beginning of the text."""
        lines = []
        for line in self.header.rstrip("\n").splitlines():
            lines.append(line if line.startswith("#") else f"# {line}".rstrip())
        return "\n".join(lines) + "\n\n" + content


class FilterViewsHook:
    """Built-in hook to filter views by name prefix/suffix.

    Example:
        # Drop every admin view
        hook = FilterViewsHook(exclude_prefix="Admin")
    """

    def __init__(
        self,
        exclude_prefix: str | None = None,
        exclude_suffix: str | None = None,
        include_prefix: str | None = None,
        include_suffix: str | None = None,
    ):
        self.exclude_prefix = exclude_prefix
        self.exclude_suffix = exclude_suffix
        self.include_prefix = include_prefix
        self.include_suffix = include_suffix

    def _should_include(self, name: str) -> bool:
        """Check if a view should be included."""
        if self.exclude_prefix and name.startswith(self.exclude_prefix):
            return False
        if self.exclude_suffix and name.endswith(self.exclude_suffix):
            return False
        if self.include_prefix and not name.startswith(self.include_prefix):
            return False
        if self.include_suffix and not name.endswith(self.include_suffix):
            return False
        return True

    def pre_emit(self, schema: IRSchema) -> IRSchema:
        """Return a copy of the schema without the filtered-out views."""
        views = {k: v for k, v in schema.views.items() if self._should_include(k)}
        return replace(schema, views=views)


class HookRunner:
    """Runs a collection of hooks in order."""

    def __init__(self):
        self.pre_hooks: list[PreEmitHook] = []
        self.post_hooks: list[PostEmitHook] = []

    def add_pre_hook(self, hook: PreEmitHook):
        """Add a pre-emit hook."""
        self.pre_hooks.append(hook)

    def add_post_hook(self, hook: PostEmitHook):
        """Add a post-emit hook."""
        self.post_hooks.append(hook)

    def run_pre_hooks(self, schema: IRSchema) -> IRSchema:
        """Run all pre-emit hooks in order."""
        for hook in self.pre_hooks:
            schema = hook.pre_emit(schema)
        return schema

    def run_post_hooks(self, content: str) -> str:
        """Run all post-emit hooks in order."""
        for hook in self.post_hooks:
            content = hook.post_emit(content)
        return content
