import os
import pymongo
import logging

from .kv_secrets import get_secret

# Global cache for the MongoDB client to enable connection pooling across invocations
_CLIENT_CACHE = None

# Checked in order; the first non-empty value wins
CONNECTION_KEYS = [
    "MongoDb-Connection-String",
    "MONGODB_CONNECTION_STRING",
    "CUSTOMCONNSTR_MongoDb-Connection-String",
    "MONGO_URI",
]


def get_connection_string() -> str | None:
    for key in CONNECTION_KEYS:
        val = get_secret(key)
        if val:
            return val
    return None


def get_db_client(**kwargs):
    """
    Returns a PyMongo client using the connection string from env / Key Vault.
    Uses a global cache to reuse the client across Azure Function invocations.
    """
    global _CLIENT_CACHE

    if _CLIENT_CACHE:
        return _CLIENT_CACHE

    uri = get_connection_string()
    if not uri:
        # Never fall back to localhost:27017
        error_msg = f"MongoDB Connection String not found. Checked: {CONNECTION_KEYS}"
        logging.critical(error_msg)
        raise RuntimeError(error_msg)

    kwargs.setdefault("serverSelectionTimeoutMS", 5000)
    try:
        client = pymongo.MongoClient(uri, **kwargs)
        _CLIENT_CACHE = client
        return client
    except Exception as e:
        logging.critical(f"Failed to create MongoClient: {e}")
        raise


def get_db(db_name_env="VP_DB_NAME", default_db="Video_Points"):
    """
    Returns the database object.
    """
    client = get_db_client()
    db_name = os.getenv(db_name_env, os.getenv("DB_NAME", default_db))
    return client[db_name]
