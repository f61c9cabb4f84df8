# API Routers - VaultStamp

from vaultstamp.routers import alerts, files, health, registry

__all__ = ["alerts", "files", "health", "registry"]
