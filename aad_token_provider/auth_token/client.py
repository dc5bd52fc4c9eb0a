"""Credential client capability and its Azure identity implementation."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

import aiohttp
from azure.core.exceptions import (
    ClientAuthenticationError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.core.pipeline.transport import AioHttpTransport
from azure.identity.aio import DefaultAzureCredential

from ..errors import NetworkError, OAuthError
from .types import AccessToken


@runtime_checkable
class CredentialClient(Protocol):
    """Capability that exchanges scopes for a fresh bearer token."""

    async def get_token(self, *scopes: str) -> AccessToken: ...  # noqa: D401,E701

    async def close(self) -> None: ...  # noqa: D401,E701


class AzureCredentialClient:
    """Credential client backed by ``azure.identity.aio.DefaultAzureCredential``.

    The credential chain (environment, workload identity, managed identity,
    Azure CLI...) is resolved by azure-identity. HTTP traffic goes through a
    single aiohttp session owned by this client and shared by every credential
    in the chain.
    """

    def __init__(
        self,
        credential: DefaultAzureCredential | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            credential: Pre-built async credential; a DefaultAzureCredential
                sharing ``http_session`` is created when omitted.
            http_session: Session to route azure-core requests through; one is
                created and owned by this client when omitted.
        """
        self._owns_session = http_session is None
        self.session = http_session or aiohttp.ClientSession()
        if credential is None:
            transport = AioHttpTransport(session=self.session, session_owner=False)
            credential = DefaultAzureCredential(transport=transport)
        self.credential = credential

    async def get_token(self, *scopes: str) -> AccessToken:
        """Fetch a token for ``scopes``.

        Raises:
            NetworkError: On transport failures (retryable).
            OAuthError: When no credential in the chain can authenticate.
        """
        try:
            result = await self.credential.get_token(*scopes)
        except ClientAuthenticationError as e:
            raise OAuthError(
                f"Authentication failed: {e}", data={"scopes": list(scopes)}
            ) from e
        except TimeoutError as e:
            raise NetworkError("Token request timeout") from e
        except (ServiceRequestError, ServiceResponseError, aiohttp.ClientError) as e:
            raise NetworkError(f"Network error during token request: {e}") from e
        expires_on = datetime.fromtimestamp(result.expires_on, UTC)
        logging.debug(f"🔑 Token issued scopes={list(scopes)} expires_on={expires_on.isoformat()}")
        return AccessToken(token=result.token, expires_on=expires_on)

    async def close(self) -> None:
        """Close the credential and, when owned, the HTTP session."""
        try:
            await self.credential.close()
        finally:
            if self._owns_session and not self.session.closed:
                await self.session.close()
