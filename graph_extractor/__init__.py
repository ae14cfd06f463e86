"""Static code graph extraction for JavaScript and TypeScript repositories."""

__version__ = "0.1.0"
