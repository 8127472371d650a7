"""Keep generated files in sync with the commands and inputs that produce them."""

__version__ = "0.1.0"
