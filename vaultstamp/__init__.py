"""VaultStamp - content-addressed file registry."""

__version__ = "1.0.0"
