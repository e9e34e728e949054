"""Exception taxonomy shared by every careerkb component."""

from typing import Any

RAW_SNIPPET_CHARS = 200


class CareerKBError(Exception):
    """Base class for all careerkb errors."""


class ConfigurationError(CareerKBError):
    """The relational store (or another required collaborator) is not configured."""


class NotFoundError(CareerKBError):
    """No master resume exists yet."""

    def __init__(self, message: str = "no master resume found - run `careerkb build` first"):
        super().__init__(message)


class InvalidInputError(CareerKBError, ValueError):
    """Caller supplied arguments the operation cannot work with."""


class ParseError(CareerKBError):
    """Language-model output violated the expected JSON contract.

    Attributes:
        stage: Pipeline stage whose output failed to parse
        raw_output: Full offending output
        raw_snippet: Leading part of the offending output, for diagnostics
    """

    def __init__(self, stage: str, detail: str, raw: str = ""):
        self.stage = stage
        self.detail = detail
        self.raw_output = raw
        self.raw_snippet = raw[:RAW_SNIPPET_CHARS] + ("..." if len(raw) > RAW_SNIPPET_CHARS else "")
        super().__init__(f"{stage} parse failed: {detail} (raw: {self.raw_snippet})")


class PartialFailure(CareerKBError):
    """A non-fatal step failed; callers log it, count it, and carry on.

    Attributes:
        step: Name of the step that failed
        context: Structured details for the log entry
    """

    def __init__(self, step: str, reason: str, **context: Any):
        self.step = step
        self.reason = reason
        self.context = context
        super().__init__(f"{step}: {reason}")
