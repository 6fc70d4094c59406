# src/scriptsrc/errors.py
from typing import List, Optional


class ScriptSrcError(Exception):
    """Base class for every failure raised while building a script-src."""


# --- Source classification ---

class SourceError(ScriptSrcError):
    """A script src attribute that cannot be allow-listed."""

    def __init__(self, message: str, reference: str):
        super().__init__(message)
        self.reference = reference


class MalformedReferenceError(SourceError):
    def __init__(self, reference: str, reason: Exception):
        super().__init__(f"failed to parse script src {reference!r}: {reason}", reference)
        self.reason = reason


class InsecureSourceError(SourceError):
    def __init__(self, reference: str):
        super().__init__(f"insecure script src: {reference}", reference)


class UnsupportedSourceError(SourceError):
    def __init__(self, reference: str):
        super().__init__(f"failed to understand script src {reference}", reference)


# --- Markup shape ---

class MarkupError(ScriptSrcError):
    """A <script> tag whose shape makes the required policy ambiguous."""


class DuplicateAttributeError(MarkupError):
    def __init__(self, value: str):
        super().__init__(f"script tag had a second src attribute: {value}")
        self.value = value


class InvalidInlineScriptError(MarkupError):
    pass


# --- Documents and batches ---

class DocumentError(ScriptSrcError):
    """
    Wraps any failure that happened while reading, parsing or walking a single file.
    The original exception is available as __cause__.
    """

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path

    def __reduce__(self):
        # Survive the trip back from worker processes
        return _rebuild_document_error, (type(self), self.path, str(self))


class ParseFailure(DocumentError):
    reason: Optional[Exception] = None

    def __init__(self, path: str, reason: Exception):
        super().__init__(path, f"failed to parse {path} as HTML: {reason}")
        self.reason = reason


def _rebuild_document_error(cls, path: str, message: str) -> DocumentError:
    error = cls.__new__(cls)
    DocumentError.__init__(error, path, message)
    return error


class ScriptSrcAggregateError(ScriptSrcError):
    """Raised by batch processing when one or more files failed."""

    def __init__(self, errors: List[ScriptSrcError]):
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = str(self.errors[0])
        else:
            message = f"{len(self.errors)} files failed: " + "; ".join(str(e) for e in self.errors)
        super().__init__(message)
