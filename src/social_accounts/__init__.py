"""User accounts for a federated social network."""

__version__ = "0.1.0"
