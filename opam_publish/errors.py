"""Exception hierarchy for handled failures.

Everything deriving from :class:`PublishError` is reported by the CLI as a
one-line error with exit status 1. Other exceptions are unexpected faults.
"""


class PublishError(Exception):
    """Base class for failures the operator can act upon."""


class InputError(PublishError):
    """Missing or unusable input (package name, version, archive, metadata)."""


class MetadataFormatError(PublishError):
    """An opam, descr or url file could not be parsed."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class ValidationFailedError(PublishError):
    """The metadata checks failed and were not bypassed."""


class StateContradictionError(PublishError):
    """Local state disagrees with what was requested (label or user mismatch)."""


class RegistryError(PublishError):
    """A mirror's recorded remotes cannot be interpreted."""


class ForgeError(PublishError):
    """A GitHub operation failed."""


class ForgeAuthError(ForgeError):
    """A token could not be obtained."""


class ForgeTimeoutError(ForgeError):
    """GitHub did not finish registering a fork in time."""


class GitCommandError(PublishError):
    """A git command exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, stderr: str = ""):
        self.command = args
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(
            f"'git {' '.join(args)}' exited with status {returncode}{detail}"
        )
