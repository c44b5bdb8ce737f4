"""
Unit tests for services/account_keys_service.py
"""

import os
import sys
import unittest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "functions"))

from services.account_keys_service import (
    AccountKeyService,
    AccountNotFoundError,
    resource_group_from_id,
)

SUB = "/subscriptions/00000000-0000-0000-0000-000000000001"


def make_account(name: str, resource_group: str) -> MagicMock:
    account = MagicMock()
    account.name = name
    account.id = f"{SUB}/resourceGroups/{resource_group}/providers/Microsoft.Storage/storageAccounts/{name}"
    return account


def make_key(key_name: str, value: str) -> MagicMock:
    key = MagicMock()
    key.key_name = key_name
    key.value = value
    return key


class TestResourceGroupFromId(unittest.TestCase):
    def test_extracts_resource_group(self):
        self.assertEqual(resource_group_from_id(make_account("acct1", "rg-data").id), "rg-data")

    def test_case_insensitive_segment(self):
        rid = f"{SUB}/resourcegroups/rg-lower/providers/Microsoft.Storage/storageAccounts/acct1"
        self.assertEqual(resource_group_from_id(rid), "rg-lower")

    def test_missing_resource_group(self):
        with self.assertRaises(ValueError):
            resource_group_from_id(SUB)


class TestAccountKeyService(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.client.storage_accounts.list.return_value = [
            make_account("other", "rg-other"),
            make_account("acct1", "rg-data"),
        ]
        self.factory = MagicMock(return_value=self.client)
        self.service = AccountKeyService(self.factory)

    def test_list_keys(self):
        self.client.storage_accounts.list_keys.return_value.keys = [
            make_key("key1", "AAA"),
            make_key("key2", "BBB"),
        ]

        keys = self.service.list_keys("ACCT1")

        self.client.storage_accounts.list_keys.assert_called_once_with("rg-data", "acct1")
        self.assertEqual(keys, [{"keyName": "key1", "value": "AAA"}, {"keyName": "key2", "value": "BBB"}])

    def test_unknown_account(self):
        with self.assertRaises(AccountNotFoundError):
            self.service.list_keys("missing")
        self.client.storage_accounts.list_keys.assert_not_called()

    def test_regenerate_key(self):
        self.client.storage_accounts.regenerate_key.return_value.keys = [
            make_key("key1", "AAA"),
            make_key("key2", "NEW"),
        ]

        new_key_name = self.service.regenerate_key("acct1", "key2")

        self.assertEqual(new_key_name, "key2")
        args = self.client.storage_accounts.regenerate_key.call_args[0]
        self.assertEqual(args[0], "rg-data")
        self.assertEqual(args[1], "acct1")
        self.assertEqual(args[2].key_name, "key2")

    def test_regenerate_unknown_account(self):
        with self.assertRaises(AccountNotFoundError):
            self.service.regenerate_key("missing", "key1")
        self.client.storage_accounts.regenerate_key.assert_not_called()

    def test_management_client_built_once(self):
        self.client.storage_accounts.list_keys.return_value.keys = []
        self.service.list_keys("acct1")
        self.service.list_keys("acct1")
        self.factory.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
