from hashfile.utils.hashing import is_sha256

from .client import AnchorClient
from .errors import NotFound, RequestError, TxNotFound
from .transactions import PROVIDERS, Transaction

__all__ = [
    "AnchorClient",
    "NotFound", "RequestError", "TxNotFound",
    "PROVIDERS", "Transaction",
    "is_sha256"]
