from __future__ import annotations

from typing import Iterable

SUPPORTED_EXTENSIONS = frozenset(
    {
        ".py",
        ".js",
        ".jsx",
        ".mjs",
        ".cjs",
        ".ts",
        ".tsx",
        ".go",
        ".java",
        ".kt",
        ".kts",
        ".scala",
        ".rb",
        ".php",
        ".cs",
        ".c",
        ".h",
        ".cc",
        ".cpp",
        ".hpp",
        ".rs",
        ".swift",
        ".m",
        ".sh",
        ".sql",
        ".tf",
        ".vue",
        ".svelte",
    }
)


def normalize_extensions(extensions: Iterable[str] | None) -> frozenset[str]:
    """Lower-case an allow-list and make sure every entry starts with a dot."""
    if extensions is None:
        return SUPPORTED_EXTENSIONS
    return frozenset(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions if ext)


def is_supported_file(file_name: str, extensions: Iterable[str] | None = None) -> bool:
    allowed = normalize_extensions(extensions) if extensions is not None else SUPPORTED_EXTENSIONS
    return any(file_name.lower().endswith(ext) for ext in allowed)
