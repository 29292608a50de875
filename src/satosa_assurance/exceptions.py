from satosa.exception import SATOSAConfigurationError, SATOSAError


class AssuranceError(SATOSAError):
    """Generic error for the assurance plugins."""


class ConfigError(AssuranceError, SATOSAConfigurationError):
    """The plugin configuration has the wrong shape."""
