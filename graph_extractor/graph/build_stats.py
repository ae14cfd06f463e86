from dataclasses import dataclass, field


@dataclass
class BuildStats:
    """Statistics collected during one graph build.

    Attributes:
        total_files: Number of distinct files passed to the build.
        indexed_files: Files extracted successfully.
        skipped_files: Files skipped (unsupported extension, too large, duplicate).
        failed_files: Files that could not be read or parsed.
        total_directories: Directory nodes synthesized.
        total_declarations: Class, method, function and variable nodes created.
        import_edges: Imports edges resolved between files of the build.
        unresolved_imports: Relative imports whose target is not in the build.
        errors: Messages for failed files.
        warnings: Messages for skipped files and unresolved imports.
    """
    total_files: int = 0
    indexed_files: int = 0
    skipped_files: int = 0
    failed_files: int = 0
    total_directories: int = 0
    total_declarations: int = 0
    import_edges: int = 0
    unresolved_imports: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
