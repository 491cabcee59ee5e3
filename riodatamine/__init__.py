"""Riodatamine OAuth2 login with signed-request support."""

__version__ = "0.1.0"
