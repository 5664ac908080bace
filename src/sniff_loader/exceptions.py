"""Custom exceptions for the :mod:`sniff_loader` package."""


class SniffLoaderError(Exception):
    """Base class for all custom ``sniff_loader`` exceptions.

    Parameters
    ----------
    message:
        Short description of the failure.
    context:
        Optional additional information about where/why the error occurred,
        usually the offending path.
    suggestion:
        Optional hint that may help recover from the error.
    """

    def __init__(
        self,
        message: str = "",
        *,
        context: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(message)
        self.context = context
        self.suggestion = suggestion

    def __str__(self) -> str:
        text = super().__str__()
        if self.context:
            text = f"{text} [{self.context}]"
        return text


class ConcurrentOperationInProgress(SniffLoaderError):
    """Raised when the output artifact is held by another parse."""


class IncompatibleLegacyArtifact(SniffLoaderError):
    """Raised when a directly opened parsed artifact fails cache validation."""


class ParserProducedNoOutput(SniffLoaderError):
    """Raised when the parser engine finished but wrote no artifact."""


class CorruptArtifactBody(SniffLoaderError):
    """Raised when the packet body of an artifact cannot be decoded."""


class ParserInvocationError(SniffLoaderError):
    """Raised when the external parser engine exits with a failure."""


class ParserNotAvailable(SniffLoaderError):
    """Raised when no parser engine backend is available."""


class UnsupportedSourceError(SniffLoaderError):
    """Raised when a source file cannot be classified."""


class ParserConfigError(SniffLoaderError):
    """Raised when the parser configuration file cannot be loaded."""
