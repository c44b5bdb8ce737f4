import logging
import threading
from typing import Callable, Dict, Optional
from azure.core.credentials import TokenCredential
from azure.identity import ManagedIdentityCredential
from azure.mgmt.resource import SubscriptionClient
from azure.mgmt.storage import StorageManagementClient
from azure.storage.blob import BlobServiceClient
from shared.config_utils import (
    get_management_credential,
    get_storage_endpoint_suffix,
    get_subscription_id,
    get_tenant_id,
    use_explicit_subscription,
)


def get_blob_service_client(account_name: str, credential: TokenCredential, endpoint_suffix: str = None) -> BlobServiceClient:
    suffix = endpoint_suffix or get_storage_endpoint_suffix()
    return BlobServiceClient(account_url=f"https://{account_name}.{suffix}", credential=credential)


class SigningClientCache:
    """Per-account BlobServiceClient cache, shared by every request in the worker.

    Entries are never evicted. Building a client is a local object
    construction (no network), so it happens while holding the lock.
    ``in`` and ``len()`` are for inspecting the cache, not used on the
    request path.
    """

    def __init__(
        self,
        credential: TokenCredential,
        endpoint_suffix: str = None,
        client_factory: Optional[Callable[[str], BlobServiceClient]] = None,
    ):
        self._credential = credential
        self._endpoint_suffix = endpoint_suffix or get_storage_endpoint_suffix()
        self._client_factory = client_factory or self._build_client
        self._clients: Dict[str, BlobServiceClient] = {}
        self._lock = threading.Lock()

    def _build_client(self, account_name: str) -> BlobServiceClient:
        return get_blob_service_client(account_name, self._credential, self._endpoint_suffix)

    def get_or_create(self, account_name: str) -> BlobServiceClient:
        with self._lock:
            client = self._clients.get(account_name)
            if client is None:
                client = self._client_factory(account_name)
                self._clients[account_name] = client
                logging.info(f"Created signing client for storage account {account_name}")
            return client

    def __contains__(self, account_name: str) -> bool:
        with self._lock:
            return account_name in self._clients

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)


def get_default_subscription_id(credential: TokenCredential) -> str:
    subscriptions = SubscriptionClient(credential).subscriptions.list()
    first = next(iter(subscriptions), None)
    if first is None:
        raise RuntimeError("No Azure subscription is visible to the managed identity.")
    return first.subscription_id


def get_storage_management_client() -> StorageManagementClient:
    if use_explicit_subscription():
        tenant_id = get_tenant_id()
        subscription_id = get_subscription_id()
        logging.info(f"Using configured subscription {subscription_id} in tenant {tenant_id} for storage management")
        credential = get_management_credential(tenant_id)
        return StorageManagementClient(credential=credential, subscription_id=subscription_id)

    credential = ManagedIdentityCredential()
    subscription_id = get_default_subscription_id(credential)
    logging.info(f"Using default subscription {subscription_id} of the managed identity for storage management")
    return StorageManagementClient(credential=credential, subscription_id=subscription_id)
