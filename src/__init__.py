"""ModSecurity v3 + nginx connector + OWASP CRS installer."""

__version__ = "0.1.0"
