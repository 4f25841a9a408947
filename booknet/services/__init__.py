"""
High-level use cases for the booknet API.

Each service module orchestrates repositories/adapters to implement business
rules (register, activate an account, reset a password, store a photo).
Routers call these services instead of manipulating the database directly.
"""
