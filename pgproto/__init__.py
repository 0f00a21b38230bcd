"""Low-level PostgreSQL wire protocol: frontend messages, authentication, binary values, escaping and catalog code generation."""

__version__ = "0.1.0"