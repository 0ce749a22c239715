"""
raidctl package
- Resolves command-line options into one validated action and dispatches it to
  a metadata-layer handler under locking and privilege rules.
"""
__all__ = ["cli", "config", "options", "parser", "validator", "dispatch", "handlers", "backend", "discover", "locking", "formats", "errors", "log", "util", "types", "bundle"]
__version__ = "1.0.0"
