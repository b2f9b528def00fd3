"""REST API starter: user registration, JWT auth, per-IP rate limiting, health checks."""

__version__ = "1.0.0"
