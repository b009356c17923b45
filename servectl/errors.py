"""Exceptions raised while compiling an API spec into workload objects.

A compilation either returns every object or raises exactly one of these;
nothing is ever returned half built.
"""


class CompileError(Exception):
    """Base exception for compilation failures."""


class UnsupportedRuntime(CompileError):
    """The predictor type has no registered topology."""

    def __init__(self, predictor_type):
        self.predictor_type = predictor_type
        super().__init__(f"Unsupported predictor type: {predictor_type}")


class InvalidComputeBudget(CompileError):
    """The requested compute is smaller than the reserved sidecar baseline."""


class EncodingFailure(CompileError):
    """The download manifest could not be encoded or decoded."""
