"""API route modules."""

from . import auth, ping, reports, tickets, users  # noqa: F401
