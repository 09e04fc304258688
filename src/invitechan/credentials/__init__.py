from invitechan.credentials.store import (
    AbstractCredentialStore,
    CredentialResolver,
    SqlCredentialStore,
)
from invitechan.credentials.types import Credential

__all__ = [
    "AbstractCredentialStore",
    "Credential",
    "CredentialResolver",
    "SqlCredentialStore",
]
