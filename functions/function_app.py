import json
import logging

import azure.functions as func

from shared.clients import SigningClientCache, get_storage_management_client
from shared.config_utils import get_credential, get_storage_endpoint_suffix, JSON_MIME, TEXT_MIME
from shared.models import ErrorKind
from services.sas_service import issue_read_sas
from services.account_keys_service import AccountKeyService

app = func.FunctionApp()

_signing_clients = SigningClientCache(get_credential(), get_storage_endpoint_suffix())
_account_keys = AccountKeyService(get_storage_management_client)

_STATUS_BY_ERROR = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.UPSTREAM_UNAVAILABLE: 502,
}


def _query_param(req: func.HttpRequest, name: str) -> str:
    return (req.params.get(name) or "").strip()


@app.route(route="get_sas_url", auth_level=func.AuthLevel.FUNCTION, methods=["GET"])
def get_sas_url(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("GetSASUrl triggered")

    result = issue_read_sas(req.params.get("blobUri"), _signing_clients)
    if result.ok:
        return func.HttpResponse(result.uri, mimetype=TEXT_MIME, status_code=200)

    return func.HttpResponse(
        result.error.detail(),
        mimetype=TEXT_MIME,
        status_code=_STATUS_BY_ERROR[result.error.kind],
    )


@app.route(route="get_account_keys", auth_level=func.AuthLevel.FUNCTION, methods=["GET"])
def get_account_keys(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("GetAccountKeys triggered")

    account_name = _query_param(req, "accountName")
    if not account_name:
        return func.HttpResponse(
            "Request must contain query parameter 'accountName' designating the storage account "
            "for which you wish to retrieve the account keys",
            status_code=400,
        )

    try:
        keys = _account_keys.list_keys(account_name)
    except Exception as e:
        logging.exception(f"Failure retrieving keys for '{account_name}'")
        return func.HttpResponse(f"Failure retrieving keys for '{account_name}': {e}", status_code=502)

    logging.info(f"Successfully retrieved keys for '{account_name}'")
    return func.HttpResponse(json.dumps(keys), mimetype=JSON_MIME, status_code=200)


@app.route(route="regenerate_key", auth_level=func.AuthLevel.FUNCTION, methods=["POST"])
def regenerate_key(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("RegenerateKey triggered")

    account_name = _query_param(req, "accountName")
    if not account_name:
        return func.HttpResponse(
            "Request must contain query parameter 'accountName' designating the storage account "
            "for which you wish to regenerate a key",
            status_code=400,
        )

    key_name = _query_param(req, "keyName")
    if not key_name:
        return func.HttpResponse(
            "Request must contain query parameter 'keyName' designating the name of the key you wish to regenerate",
            status_code=400,
        )

    try:
        new_key_name = _account_keys.regenerate_key(account_name, key_name)
    except Exception as e:
        logging.exception(f"Failure regenerating key '{key_name}' for '{account_name}'")
        return func.HttpResponse(f"Failure regenerating key '{key_name}' for '{account_name}': {e}", status_code=502)

    logging.info(f"Successfully regenerated key for {account_name}/{new_key_name}")
    return func.HttpResponse(status_code=200)
