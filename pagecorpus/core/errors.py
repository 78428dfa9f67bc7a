from __future__ import annotations


class ResultError(Exception):
    """Base class for failures raised by the result pipeline."""


class IOFailure(ResultError, OSError):
    """Reading a line source or writing a result file failed; the run is aborted."""


class DirectoryUnavailable(IOFailure):
    """A required input directory does not exist."""


class ConverterUnavailable(IOFailure):
    """The structured-format converter executable could not be started."""


class ConverterTimeout(IOFailure):
    """The structured-format converter exceeded the configured timeout."""
