"""Domain errors - the failure modes a search can surface."""


class ConfigurationError(ValueError):
    """Raised for malformed search settings before any evaluation starts."""


class ModelFitError(RuntimeError):
    """Raised by a model fitter when an order combination cannot be fitted."""


class SearchExhaustedError(RuntimeError):
    """Raised when a finished search never found a viable model."""
