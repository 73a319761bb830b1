class RouteOptimizerError(Exception):
    """Base exception for route optimization errors."""


class ExternalServiceError(RouteOptimizerError):
    """Raised when an upstream API call fails."""


class InvalidLocationError(RouteOptimizerError):
    """Raised when a waypoint address cannot be resolved to coordinates."""


class OptimizationError(RouteOptimizerError):
    """Raised when an optional solver cannot produce a tour."""


class RouteNotFoundError(RouteOptimizerError):
    """Raised when a saved optimized route does not exist."""
