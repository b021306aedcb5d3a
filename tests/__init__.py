"""
RichStore Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies, in-memory substrate)
- integration/: Integration tests (Redis substrate on fakeredis)
- e2e/: End-to-end tests (live Redis, opt-in)
"""
