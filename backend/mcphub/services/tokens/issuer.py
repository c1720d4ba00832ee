from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from mcphub.constants import DEFAULT_SCOPES, SCOPES, SERVICE_IDS
from mcphub.services._shared.base import BaseService, ServiceContext
from mcphub.services._shared.errors import (
    AuthenticationFailed,
    ConfigurationError,
    ValidationFailed,
)
from mcphub.services._shared.ports import Clock, TokenProvider
from mcphub.services.tokens.credentials import signature_matches, timestamp_within
from mcphub.services.tokens.dto import IssueIn, TokenLifetimes, TokenPairOut
from mcphub.services.tokens.minting import TokenMinter

LOGGER = logging.getLogger(__name__)

SecretLookup = Callable[[str], str | None]


def filter_scopes(requested: Any) -> list[str]:
    """Keep only recognised scopes, preserving request order.

    ``requested`` may be a list of strings or an OAuth-style space-separated
    string; ``None`` selects the default scopes.
    """
    if requested is None:
        return list(DEFAULT_SCOPES)
    if isinstance(requested, str):
        candidates = requested.split()
    elif isinstance(requested, list | tuple):
        candidates = [s for s in requested if isinstance(s, str)]
    else:
        return []
    seen: list[str] = []
    for scope in candidates:
        if scope in SCOPES and scope not in seen:
            seen.append(scope)
    return seen


class TokenIssuer(BaseService):
    """
    Credential-based issuance (``grant_type=service_credentials``).

    A caller proves possession of its service's shared secret with an
    HMAC-SHA256 over the raw request body. Checks run in a fixed order and
    nothing is written unless all of them pass.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        secret_lookup: SecretLookup,
        lifetimes: TokenLifetimes | None = None,
        timestamp_tolerance: timedelta = timedelta(minutes=5),
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the issuer with its dependencies.

        :param token_provider: Adapter for signing JWTs.
        :param secret_lookup: Resolves a service id to its shared secret.
        :param lifetimes: Access/refresh lifetimes.
        :param timestamp_tolerance: Accepted ``X-Timestamp`` skew.
        """
        super().__init__(ctx=ctx, clock=clock)
        self.secret_lookup = secret_lookup
        self.timestamp_tolerance = timestamp_tolerance
        self.minter = TokenMinter(token_provider, lifetimes or TokenLifetimes())

    # ------------------------------------------------------------------ #
    # Issue
    # ------------------------------------------------------------------ #

    def issue(self, dto: IssueIn) -> TokenPairOut:
        """
        Validate service credentials and mint a fresh pair.

        :param dto: Raw headers and body of the credential request.
        :returns: New token pair, already persisted.
        :raises ValidationFailed: ``missing_header``, ``invalid_service``,
            ``invalid_payload``, ``unsupported_grant_type``, ``invalid_scope``.
        :raises AuthenticationFailed: ``invalid_timestamp``, ``invalid_signature``.
        :raises ConfigurationError: Service secret not provisioned.
        """
        service_id = (dto.service_id or "").strip()
        if not service_id:
            raise ValidationFailed("X-Service-Id header is required", code="missing_header")
        if service_id not in SERVICE_IDS:
            raise ValidationFailed(
                f"Unknown service: {service_id}",
                code="invalid_service",
                details={"allowed": list(SERVICE_IDS)},
            )
        if not dto.signature:
            raise ValidationFailed(
                "X-Signature header is required", code="missing_header", service_id=service_id
            )

        now = self.now()
        if dto.timestamp and not timestamp_within(
            dto.timestamp, now=now, tolerance=self.timestamp_tolerance
        ):
            raise AuthenticationFailed(
                "X-Timestamp is invalid or outside the accepted window",
                code="invalid_timestamp",
                service_id=service_id,
            )

        if not dto.body:
            raise ValidationFailed(
                "Request body is required", code="invalid_payload", service_id=service_id
            )

        secret = self.secret_lookup(service_id)
        if not secret:
            LOGGER.error(
                "No shared secret provisioned for service",
                extra={"service_id": service_id, "error_code": "configuration_error"},
            )
            raise ConfigurationError(
                "Service credentials are not configured", service_id=service_id
            )

        if not signature_matches(secret, dto.body, dto.signature):
            LOGGER.warning(
                "Rejected credential request with bad signature",
                extra={"service_id": service_id, "error_code": "invalid_signature"},
            )
            raise AuthenticationFailed(
                "Signature verification failed", code="invalid_signature", service_id=service_id
            )

        payload = self._parse_body(dto.body, service_id)
        if payload.get("grant_type") != "service_credentials":
            raise ValidationFailed(
                "grant_type must be 'service_credentials'",
                code="unsupported_grant_type",
                service_id=service_id,
            )

        client_id = payload.get("client_id")
        if not isinstance(client_id, str) or not client_id.strip():
            raise ValidationFailed(
                "client_id is required", code="invalid_payload", service_id=service_id
            )
        client_id = client_id.strip()

        scope = filter_scopes(payload.get("scope"))
        if not scope:
            raise ValidationFailed(
                "No valid scope requested",
                code="invalid_scope",
                details={"allowed": sorted(SCOPES)},
                service_id=service_id,
                client_id=client_id,
            )

        with self.rw_uow() as uow:
            pair = self.minter.mint_pair(
                uow,
                service_id=service_id,
                client_id=client_id,
                scope=scope,
                now=now,
                ctx=self.ctx,
            )

        LOGGER.info(
            "Issued token pair",
            extra={"service_id": service_id, "client_id": client_id},
        )
        return pair

    @staticmethod
    def _parse_body(body: bytes, service_id: str) -> dict[str, Any]:
        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise ValidationFailed(
                "Request body must be valid JSON", code="invalid_payload", service_id=service_id
            ) from exc
        if not isinstance(payload, dict):
            raise ValidationFailed(
                "Request body must be a JSON object", code="invalid_payload", service_id=service_id
            )
        return payload
