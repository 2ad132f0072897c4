"""Exception types raised by the ordinals codecs and their collaborators."""


class OrdinalsError(Exception):
    """Base class for all mcp-ordinals errors."""


class ValidationError(OrdinalsError, ValueError):
    """Raised when an etching request violates one or more constraints.

    All violations are collected and reported together in ``violations``.
    """

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__(f"Validation failed: {', '.join(self.violations)}")


class InvalidNameFormat(OrdinalsError, ValueError):
    """Raised when a rune name has a bad length or charset."""


class MalformedVarint(OrdinalsError, ValueError):
    """Raised when a variable-length integer is truncated or unterminated."""


class UnrecognizedEnvelope(OrdinalsError, ValueError):
    """Raised when script bytes do not match an expected envelope layout."""


class CollaboratorFailure(OrdinalsError, RuntimeError):
    """Raised when the node or a supervised daemon reports a failure."""
