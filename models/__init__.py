"""
Models package.

Exposes the global `storage` (DBStorage) used by the API and the token core.
The engine is chosen from DATABASE_URL when the package is first imported.
"""
from models.db_storage import DBStorage

storage = DBStorage()
storage.reload()
