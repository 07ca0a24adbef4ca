"""Core configuration, errors, logging and request protections."""
