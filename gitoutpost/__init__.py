"""Core library for outposts of a git source repository: ref names, git calls, registry, source repository queries, safety checks and progress reporting."""

__version__ = "0.1.0"