import os
import logging
from datetime import timedelta
from typing import Optional
from azure.identity import DefaultAzureCredential

_credential: Optional[DefaultAzureCredential] = None

JSON_MIME = "application/json"
TEXT_MIME = "text/plain"

DEFAULT_STORAGE_ENDPOINT_SUFFIX = "blob.core.windows.net"

# Backdated start absorbs clock drift between us and whoever validates the SAS.
SAS_CLOCK_SKEW = timedelta(seconds=30)
SAS_LIFETIME = timedelta(minutes=1)

logging.getLogger("azure").setLevel(logging.WARNING)


def get_credential() -> DefaultAzureCredential:
    global _credential
    if _credential is None:
        _credential = DefaultAzureCredential(exclude_shared_token_cache_credential=True)
    return _credential


def get_storage_endpoint_suffix() -> str:
    suffix = os.getenv("STORAGE_ENDPOINT_SUFFIX") or DEFAULT_STORAGE_ENDPOINT_SUFFIX
    return suffix.strip().strip(".")


def get_tenant_id() -> Optional[str]:
    return (os.getenv("AZURE_TENANT_ID") or "").strip() or None


def get_subscription_id() -> Optional[str]:
    return (os.getenv("AZURE_SUBSCRIPTION_ID") or "").strip() or None


def use_explicit_subscription() -> bool:
    """True when both tenant and subscription are configured in the environment."""
    return bool(get_tenant_id() and get_subscription_id())


def get_management_credential(tenant_id: str) -> DefaultAzureCredential:
    return DefaultAzureCredential(
        exclude_shared_token_cache_credential=True,
        additionally_allowed_tenants=[tenant_id],
    )
