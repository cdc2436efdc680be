"""Error types raised by the weather lookup pipeline."""


class WeatherLookupError(Exception):
    """Base class for all weather lookup failures."""
    pass


class InvalidQuery(WeatherLookupError):
    """Raised when a search query is empty or cannot be encoded."""
    pass


class NetworkError(WeatherLookupError):
    """Raised on transport failures, timeouts and non-success HTTP statuses."""
    pass


class DecodeError(WeatherLookupError):
    """Raised when an upstream payload does not match the expected schema."""
    pass


class MalformedLocation(DecodeError):
    """Raised when a coordinate string cannot be parsed as a finite number."""
    pass


class NotFound(WeatherLookupError):
    """Raised when a favorite lookup misses."""
    pass


class StorageError(WeatherLookupError):
    """Raised by favorite repositories when a commit fails."""
    pass
