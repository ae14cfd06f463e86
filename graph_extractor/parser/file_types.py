from pathlib import Path
import enum


class FileTypes(enum.StrEnum):
    """Source file types the extractor understands.

    The value is the tree-sitter grammar name used to parse the file.
    """

    TYPESCRIPT = "typescript"
    TSX = "tsx"
    JAVASCRIPT = "javascript"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_path(cls, path: Path):
        match path.suffix.lower():
            case ".ts" | ".mts" | ".cts":
                return cls.TYPESCRIPT
            case ".tsx":
                return cls.TSX
            case ".js" | ".jsx" | ".mjs" | ".cjs":
                return cls.JAVASCRIPT
            case _:
                return cls.UNKNOWN
