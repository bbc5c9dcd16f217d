"""Source-language detection and tree-sitter grammar loading."""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from tree_sitter import Language

# Lazy-loaded language modules
_LANGUAGES: dict[str, Language] = {}


@dataclass
class LanguageConfig:
    """Configuration for a supported language."""
    name: str
    extensions: tuple[str, ...]
    loader: str  # module path for tree-sitter grammar
    entry_point: str  # grammar function inside the loader module


LANGUAGES: dict[str, LanguageConfig] = {
    "php": LanguageConfig(
        name="php",
        extensions=(".php",),
        loader="tree_sitter_php",
        # language_php() accepts inline HTML around <?php tags
        entry_point="language_php",
    ),
}

SQL_EXTENSIONS = (".sql",)
COMPONENT_EXTENSIONS = (".w-c.es6.js", ".es6.js")


def get_language(name: str) -> Language | None:
    """Get a tree-sitter Language object by name. Lazy-loads the grammar."""
    if name in _LANGUAGES:
        return _LANGUAGES[name]

    config = LANGUAGES.get(name)
    if config is None:
        return None

    try:
        mod = importlib.import_module(config.loader)
        lang = Language(getattr(mod, config.entry_point)())
    except (ImportError, AttributeError):
        return None
    _LANGUAGES[name] = lang
    return lang
