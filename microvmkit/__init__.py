"""API data models, rate limiter builders, network validation and vsock helpers for microVM monitors."""

__version__ = "0.22.0"