from .sqlite import Store, SqliteStore, StaticStore
