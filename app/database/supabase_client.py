from typing import Callable

from supabase import create_client, Client
from supabase.client import ClientOptions
from app.config import settings
from app.core.errors import ConfigurationError


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        """Anon-key client. Never holds a user session."""
        if cls._client is None:
            cls._client = create_client(
                settings.supabase_url,
                settings.supabase_anon_key,
                options=_stateless_options(),
            )
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Only PrivilegedMutator may use it."""
        if cls._service_client is None:
            if not settings.supabase_service_role_key:
                raise ConfigurationError(
                    "Service role key not configured. Cannot perform privileged operations."
                )
            cls._service_client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key,
                options=_stateless_options(),
            )
        return cls._service_client

    @classmethod
    def new_session_client(cls) -> Client:
        """Throwaway anon-key client for flows that sign a user in."""
        return create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
            options=_stateless_options(),
        )

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def _stateless_options() -> ClientOptions:
    return ClientOptions(persist_session=False, auto_refresh_token=False)


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()


def get_session_client_factory() -> Callable[[], Client]:
    return SupabaseClient.new_session_client
