import os
import logging

from azure.identity import DefaultAzureCredential
from azure.keyvault.secrets import SecretClient

# Key Vault URL is optional; when unset only the environment is consulted
KEY_VAULT_URL = os.getenv("KEY_VAULT_URL", "")

# Simple in-process cache for secrets
_SECRET_CACHE: dict[str, str] = {}


def get_secret(name: str, default: str | None = None) -> str | None:
    """
    Return secret value from environment if present; otherwise fetch from Azure Key Vault.
    Falls back to `default` if neither source is available. Values are cached per-process.
    Supports KV names that disallow underscores by trying hyphenated variants.
    """
    # 1) Env precedence (easy local override for dev/testing)
    if name in os.environ and os.environ[name]:
        return os.environ[name]

    # 2) Cache
    if name in _SECRET_CACHE:
        return _SECRET_CACHE[name]

    # 3) Azure Key Vault
    vault_url = os.getenv("KEY_VAULT_URL", KEY_VAULT_URL)
    if vault_url:
        lookup_names = [name]
        # Azure KV secret names cannot contain underscores; try a hyphenated variant
        if "_" in name:
            lookup_names.append(name.replace("_", "-"))
        try:
            cred = DefaultAzureCredential()
            client = SecretClient(vault_url=vault_url, credential=cred)
            for _nm in lookup_names:
                try:
                    secret = client.get_secret(_nm)
                    val = getattr(secret, "value", None)
                    if isinstance(val, str) and val:
                        _SECRET_CACHE[name] = val
                        return val
                except Exception:
                    continue
            logging.warning(
                "Secrets: '%s' not found in Key Vault (tried: %s). Using default if provided.",
                name,
                ", ".join(lookup_names),
            )
        except Exception as e:
            # Don't crash the pipeline if KV is unreachable; rely on default
            logging.warning("Secrets: failed to fetch '%s' from Key Vault: %s", name, e)

    # 4) Fallback
    return default


def clear_secret_cache() -> None:
    _SECRET_CACHE.clear()
