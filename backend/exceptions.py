"""
exceptions.py — Typed failures raised by the collaborator layers.
Routes translate them into HTTP errors; background work only logs them.
"""


class StorageError(Exception):
    """The backing store rejected or failed an operation."""


class EmbeddingError(Exception):
    """The embedding endpoint failed or returned an unusable vector."""


class CompletionError(Exception):
    """No completion provider produced a response."""


class ExtractionError(Exception):
    """The extraction payload could not be parsed or failed validation."""
