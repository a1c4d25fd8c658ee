from novatrade.config import get_settings
from novatrade.engine import MarketEngine
from novatrade.providers.loader import get_oracle
from novatrade.storage.base import Repository
from novatrade.storage.memory import InMemoryRepository
from novatrade.storage.sqlite import SqliteRepository

settings = get_settings()


def build_repository() -> Repository:
    if settings.store_backend == "sqlite":
        return SqliteRepository(settings.db_path)
    if settings.store_backend == "memory":
        return InMemoryRepository()
    raise ValueError(f"Unknown STORE_BACKEND='{settings.store_backend}'. Expected: memory, sqlite")


# Global stores for the running API process
repository = build_repository()
oracle = get_oracle(settings)

# Engine that owns market + account state
engine = MarketEngine.from_settings(settings, repository)
engine.seed()
