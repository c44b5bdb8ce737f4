import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple
from azure.mgmt.storage import StorageManagementClient
from azure.mgmt.storage.models import StorageAccount, StorageAccountRegenerateKeyParameters


class AccountNotFoundError(LookupError):
    pass


def resource_group_from_id(resource_id: str) -> str:
    # /subscriptions/<sub>/resourceGroups/<rg>/providers/Microsoft.Storage/storageAccounts/<name>
    parts = [p for p in resource_id.split("/") if p]
    lowered = [p.lower() for p in parts]
    if "resourcegroups" not in lowered:
        raise ValueError(f"Resource id has no resource group: {resource_id}")
    idx = lowered.index("resourcegroups")
    if len(parts) <= idx + 1:
        raise ValueError(f"Resource id has no resource group: {resource_id}")
    return parts[idx + 1]


class AccountKeyService:
    """List and rotate storage account keys through the management plane.

    The management client is resolved on first use since picking the
    default subscription for a managed identity is a network call.
    """

    def __init__(self, client_factory: Callable[[], StorageManagementClient]):
        self._client_factory = client_factory
        self._client: Optional[StorageManagementClient] = None
        self._lock = threading.Lock()

    def _get_client(self) -> StorageManagementClient:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._client_factory()
        return self._client

    def _find_account(self, account_name: str) -> Tuple[StorageManagementClient, StorageAccount, str]:
        client = self._get_client()
        wanted = account_name.lower()
        for account in client.storage_accounts.list():
            if (account.name or "").lower() == wanted:
                return client, account, resource_group_from_id(account.id)
        raise AccountNotFoundError(f"No storage account named '{account_name}' in the subscription")

    def list_keys(self, account_name: str) -> List[Dict[str, str]]:
        client, account, resource_group = self._find_account(account_name)
        result = client.storage_accounts.list_keys(resource_group, account.name)
        return [{"keyName": k.key_name, "value": k.value} for k in (result.keys or [])]

    def regenerate_key(self, account_name: str, key_name: str) -> str:
        client, account, resource_group = self._find_account(account_name)
        result = client.storage_accounts.regenerate_key(
            resource_group,
            account.name,
            StorageAccountRegenerateKeyParameters(key_name=key_name),
        )
        regenerated = [k for k in (result.keys or []) if (k.key_name or "").lower() == key_name.lower()]
        new_key_name = regenerated[0].key_name if regenerated else key_name
        logging.info(f"Regenerated key {new_key_name} for storage account {account.name}")
        return new_key_name
