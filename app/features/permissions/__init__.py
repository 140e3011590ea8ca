"""
Role and permission management feature module.

Keeps a user's role and per-module read/write grants aligned between the
identity provider's claims and the user authorization document.
"""
