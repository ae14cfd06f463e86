import os
import posixpath
from pathlib import Path

# Suffixes tried, in order, when an import specifier omits the extension
IMPORT_EXTENSIONS = ("", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
INDEX_FILES = ("index.ts", "index.tsx", "index.js", "index.jsx", "index.mjs", "index.cjs")


def normalize_path(path: str | Path) -> str:
    """Canonical form used for the ``path`` property of hierarchy nodes."""
    text = os.fspath(path).replace("\\", "/")
    return posixpath.normpath(text) if text else text


def parent_directory(path: str) -> str:
    return posixpath.dirname(path) or "."


def common_root(directories: list[str]) -> str:
    """Deepest directory containing all of ``directories``, or "" if none."""
    if not directories:
        return ""
    try:
        return normalize_path(posixpath.commonpath(directories))
    except ValueError:
        # Mixed absolute and relative paths
        return ""


def import_candidates(importer_path: str, specifier: str) -> list[str]:
    """Paths a relative import specifier may refer to, most specific first."""
    if specifier.startswith("/"):
        base = normalize_path(specifier)
    else:
        base = normalize_path(posixpath.join(parent_directory(importer_path), specifier))

    candidates = [base + ext for ext in IMPORT_EXTENSIONS]
    # `./foo.js` may name `./foo.ts` in TypeScript projects compiled to JS
    stem, suffix = posixpath.splitext(base)
    if suffix in (".js", ".jsx", ".mjs", ".cjs"):
        candidates.extend(stem + ext for ext in (".ts", ".tsx", ".mts", ".cts"))
    candidates.extend(f"{base}/{index}" for index in INDEX_FILES)
    return candidates
