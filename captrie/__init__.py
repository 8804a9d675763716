"""captrie: capability identity, routing and specialization resolution."""

__version__ = "0.1.0"
