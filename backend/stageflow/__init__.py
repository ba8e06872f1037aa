"""Stage and deal completion propagation for rental and builder pipelines."""

__version__ = "1.0.0"
