# -*- coding: utf-8 -*-
"""Custom PyLEED exceptions and warnings."""
from typing import Optional


class PyleedError(Exception):
    """The base exception class for the PyLEED package.

    All custom exceptions should inherit from this exception. However this may
    be raised itself if deemed necessary.

    Arguments:
        msg: The message that will be printed when the exception is raised.

    """
    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(msg)

    def __str__(self):
        return self.msg


class ConfigurationError(PyleedError):
    """Raised when required configuration is absent or invalid.

    Most commonly this indicates that a phase shift file was requested by its
    logical name while no phase shift directory has been configured.
    """


class PhaseShiftIOError(PyleedError, OSError):
    """Raised when a phase shift file cannot be opened.

    Arguments:
        msg: message displayed when throwing the exception.
        path: the offending file path.
    """

    def __init__(self, msg: str, path: str):
        self.path = path
        super().__init__(msg)


class PhaseShiftFormatError(PyleedError, ValueError):
    """Raised when the contents of a phase shift file cannot be parsed.

    Arguments:
        msg: message displayed when throwing the exception.
        path: the file being parsed.
        line: the offending line, if any. [DEFAULT=None]
    """

    def __init__(self, msg: str, path: str, line: Optional[str] = None):
        self.path = path
        self.line = line
        super().__init__(msg)

    def __str__(self):
        if self.line is None:
            return self.msg
        return f'{self.msg}:\n{self.line.rstrip()}'


class TruncatedDataWarning(UserWarning):
    """Issued when a phase shift file ends before all energies are read.

    This is recoverable; the short table is used as-is.

    Arguments:
        expected: number of energies declared in the file header.
        found: number of energies actually read.
        path: the file that was read.

    """

    def __init__(self, expected: int, found: int, path: str):
        self.expected = expected
        self.found = found
        self.path = path
        super().__init__(
            'EOF found before reading all phase shifts: expected energies: '
            f'{expected}, found: {found}, file: {path}')
