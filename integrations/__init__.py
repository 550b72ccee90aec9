"""Clients for the hosted platform (auth, storage) and the email provider."""
from integrations.resend import EmailClient
from integrations.supabase import AuthClient, AuthSession, AuthUser, StorageClient, StorageObject

__all__ = [
    "AuthClient",
    "AuthSession",
    "AuthUser",
    "EmailClient",
    "StorageClient",
    "StorageObject",
]
