"""
Reqman: a schema-validated record store kept in a single TOML file.
"""

__version__ = "1.0.0"
