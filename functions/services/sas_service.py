import logging
from datetime import datetime, timezone
from typing import Optional, Tuple
from urllib.parse import urlparse, unquote
from azure.storage.blob import (
    BlobSasPermissions,
    BlobServiceClient,
    UserDelegationKey,
    generate_blob_sas,
)
from shared.clients import SigningClientCache
from shared.config_utils import SAS_CLOCK_SKEW, SAS_LIFETIME
from shared.models import BlobLocator, ErrorKind, SasError, SasIssueResult


def parse_blob_uri(blob_uri: str) -> Tuple[Optional[BlobLocator], Optional[SasError]]:
    blob_uri = blob_uri.strip()
    try:
        u = urlparse(blob_uri)
        hostname = u.hostname or ""
    except ValueError as e:
        return None, SasError(ErrorKind.INVALID_REQUEST, f"Invalid blob URI '{blob_uri}' ({e})")

    if not u.scheme or not u.netloc:
        return None, SasError(ErrorKind.INVALID_REQUEST, f"Invalid blob URI '{blob_uri}' (missing scheme/host)")

    account_name = hostname.split(".")[0]
    parts = u.path.lstrip("/").split("/", 1)
    if not account_name or len(parts) < 2 or not parts[0] or not parts[1]:
        return None, SasError(
            ErrorKind.INVALID_REQUEST,
            f"Invalid blob URI '{blob_uri}' (expected https://<account>.<endpoint>/<container>/<blob>)",
        )

    locator = BlobLocator(
        account_name=account_name,
        container_name=parts[0],
        blob_name=unquote(parts[1]),
        original_uri=blob_uri,
        scheme=u.scheme,
        netloc=u.netloc,
        path=u.path,
    )
    return locator, None


def get_delegation_key(client: BlobServiceClient, start: datetime, expiry: datetime) -> Optional[UserDelegationKey]:
    key = client.get_user_delegation_key(key_start_time=start, key_expiry_time=expiry)
    if key is None or not getattr(key, "value", None):
        return None
    return key


def build_sas_uri(
    delegation_key: UserDelegationKey,
    locator: BlobLocator,
    permission: BlobSasPermissions,
    start: datetime,
    expiry: datetime,
) -> str:
    sas = generate_blob_sas(
        account_name=locator.account_name,
        container_name=locator.container_name,
        blob_name=locator.blob_name,
        user_delegation_key=delegation_key,
        permission=permission,
        start=start,
        expiry=expiry,
    )
    return f"{locator.scheme}://{locator.netloc}{locator.path}?{sas}"


def get_sas_window(now: datetime = None) -> Tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    return now - SAS_CLOCK_SKEW, now + SAS_LIFETIME


def issue_read_sas(blob_uri: Optional[str], signing_clients: SigningClientCache, now: datetime = None) -> SasIssueResult:
    """Issue a read-only user delegation SAS URL for a single blob.

    The SAS starts SAS_CLOCK_SKEW before ``now`` and expires SAS_LIFETIME after it.
    Failures are returned, not raised: INVALID_REQUEST for a missing or malformed
    URI, UPSTREAM_UNAVAILABLE for anything that goes wrong talking to Azure.
    """
    if not blob_uri or not blob_uri.strip():
        return SasIssueResult.failure(
            ErrorKind.INVALID_REQUEST,
            "Request must contain query parameter 'blobUri' designating the full URI of the Azure blob "
            "for which you wish to retrieve a read-only SAS URL",
        )

    locator, error = parse_blob_uri(blob_uri)
    if error:
        logging.warning(error.message)
        return SasIssueResult(error=error)

    start, expiry = get_sas_window(now)
    permission = BlobSasPermissions(read=True)

    try:
        client = signing_clients.get_or_create(locator.account_name)
        delegation_key = get_delegation_key(client, start, expiry)

        if delegation_key is None:
            message = f"Unable to get a user delegation key from the Storage service for blob {blob_uri}"
            logging.error(message)
            return SasIssueResult.failure(ErrorKind.UPSTREAM_UNAVAILABLE, message)

        sas_uri = build_sas_uri(delegation_key, locator, permission, start, expiry)
    except Exception as e:
        logging.exception(f"Failure retrieving SAS URL for '{blob_uri}'")
        return SasIssueResult.failure(
            ErrorKind.UPSTREAM_UNAVAILABLE, f"Failure retrieving SAS URL for '{blob_uri}'", cause=e
        )

    logging.info(f"Issued read SAS for {locator.account_name}/{locator.container_name}, expires {expiry.isoformat()}")
    return SasIssueResult.success(sas_uri)
