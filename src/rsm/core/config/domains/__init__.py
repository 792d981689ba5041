from .retry import RetryConfig

__all__ = ["RetryConfig"]
