# =========================================================================
# CUSTOM EXCEPTIONS
# =========================================================================

class CasamatchError(Exception):
    """Base exception for matching engine errors"""
    pass

class InvalidCoordinateError(CasamatchError, ValueError):
    """A non-numeric coordinate reached the geo math"""
    pass

class ConfigError(CasamatchError):
    """Configuration could not be loaded"""
    pass
