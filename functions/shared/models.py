from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_REQUEST = "InvalidRequest"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"


@dataclass(frozen=True)
class BlobLocator:
    account_name: str
    container_name: str
    blob_name: str
    original_uri: str
    scheme: str
    netloc: str
    path: str


@dataclass(frozen=True)
class SasError:
    kind: ErrorKind
    message: str
    cause: Optional[BaseException] = None

    def detail(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"


@dataclass(frozen=True)
class SasIssueResult:
    uri: Optional[str] = None
    error: Optional[SasError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, uri: str) -> "SasIssueResult":
        return cls(uri=uri)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, cause: BaseException = None) -> "SasIssueResult":
        return cls(error=SasError(kind=kind, message=message, cause=cause))
