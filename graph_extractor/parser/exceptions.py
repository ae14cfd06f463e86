"""
Exceptions raised while reading and extracting entities from source files.

The graph assembler absorbs these per file; everywhere else they propagate.
"""


class ParseError(Exception):
    """Exception raised when a file cannot be read or parsed.

    This can occur when:
      - The file cannot be read or decoded
      - The syntax tree contains error nodes
      - Recursion depth is exceeded while walking the syntax tree

    Attributes:
        message: Explanation of the error
        language: The grammar used for parsing (if known)
        file_path: The file being parsed (if known)
    """

    def __init__(
        self,
        message: str,
        language: str | None = None,
        file_path: str | None = None,
    ):
        self.message = message
        self.language = language
        self.file_path = file_path

        details = []
        if language:
            details.append(f"language={language}")
        if file_path:
            details.append(f"file={file_path}")

        full_message = message
        if details:
            full_message = f"{message} [{', '.join(details)}]"

        super().__init__(full_message)


class UnsupportedLanguageError(ParseError):
    """Exception raised for a file whose extension has no grammar.

    Attributes:
        extension: The unsupported file extension
        supported_extensions: Extensions that can be parsed
    """

    def __init__(
        self,
        extension: str,
        file_path: str | None = None,
        supported_extensions: list[str] | None = None,
    ):
        self.extension = extension
        self.supported_extensions = supported_extensions or []

        message = f"Unsupported file type for extraction: '{extension or '<none>'}'"
        if self.supported_extensions:
            message += f". Supported extensions: {', '.join(self.supported_extensions)}"

        super().__init__(message, file_path=file_path)
