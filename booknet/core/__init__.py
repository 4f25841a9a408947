"""
Core utilities shared across the booknet API.

Configuration, password hashing and JWT helpers, the SMTP mailer and the
in-process rate limiter live here; routers and services depend on these
primitives instead of reading the environment or SMTP settings themselves.
"""
