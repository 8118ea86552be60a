"""Error taxonomy for fact collection, caching and logo loading."""


class FetchError(Exception):
    """Base class for sysfetch errors."""


class SourceError(FetchError):
    """A fact source could not produce a value.

    The message becomes the ``reason`` of the resulting Fact.
    """


class SourceUnavailable(SourceError):
    """Expected absence, e.g. no battery or the tool is not installed."""


class SourceTimeout(SourceError):
    """The source did not answer before its deadline."""

    def __init__(self, message: str = "timeout") -> None:
        super().__init__(message)


class SourceParseError(SourceError):
    """The source answered with malformed or unexpected output."""


class CacheMiss(FetchError):
    """No usable cache entry. Not an error for callers; triggers live collection."""


class CacheCorrupt(CacheMiss):
    """The cache file exists but could not be decoded."""


class LogoError(FetchError):
    """An explicitly requested logo file or directory could not be read."""
