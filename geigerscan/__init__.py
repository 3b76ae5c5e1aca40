"""Report model, metadata lookup and dependency graph for unsafe-code usage statistics."""

__version__ = "0.1.0"