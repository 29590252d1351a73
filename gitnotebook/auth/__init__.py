from .credentials import (
    CredentialProvider,
    CredentialStore,
    PromptCredentialProvider,
    StoredCredentialProvider,
)

__all__ = ["CredentialProvider",
           "CredentialStore",
           "PromptCredentialProvider",
           "StoredCredentialProvider",
           ]
