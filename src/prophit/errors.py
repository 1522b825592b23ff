"""Exception hierarchy for the ingestion pipeline."""


class ProphitError(Exception):
    """Base class for application errors."""


class FetchError(ProphitError):
    """Upstream returned something that is not usable JSON."""


class SourceUnavailableError(ProphitError):
    """A market source is not configured or returned an invalid shape."""
