"""Base exception for the package."""


class MiniRedisError(Exception):
    """Error raised by most operations in this package."""