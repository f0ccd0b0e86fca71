"""Lifelog Digest - daily email digest built from lifelog transcripts"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports so lightweight modules load without the LLM/SMTP stack
def __getattr__(name: str):
    """
    Lazy imports to avoid loading heavy dependencies when only importing lightweight modules.
    """
    if name in ("ExtractorRegistry", "RegistryOptions"):
        from lifedigest.extractors import config, registry

        if name == "ExtractorRegistry":
            return registry.ExtractorRegistry
        return config.RegistryOptions

    if name in ("build_default_registry", "run_digest"):
        from lifedigest.digest import runner

        return getattr(runner, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ExtractorRegistry",
    "RegistryOptions",
    "__version__",
    "build_default_registry",
    "run_digest",
]
