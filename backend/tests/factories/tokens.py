"""Factory Boy definition for :class:`mcphub.models.service_token.ServiceToken`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import factory
from mcphub.models import ServiceToken
from mcphub.services.tokens.credentials import generate_refresh_token, hash_token
from tests.factories import BaseFactory


class ServiceTokenFactory(BaseFactory):
    """
    Build persisted token rows.

    Notes
    -----
    - ``raw_token`` is a factory parameter only; the row stores its hash, as
      the issuer does. Read it back from the factory call when needed.
    """

    class Meta:
        model = ServiceToken
        exclude = ("raw_token",)

    raw_token = factory.LazyFunction(generate_refresh_token)

    service_id = "minu-find"
    client_id = factory.Sequence(lambda n: f"client-{n}")
    token_type = "refresh"
    token_hash = factory.LazyAttribute(lambda o: hash_token(o.raw_token))
    scope = factory.LazyFunction(lambda: ["events:write"])
    expires_at = factory.LazyFunction(lambda: datetime.now(UTC) + timedelta(days=7))
    ip_address = factory.Faker("ipv4")
    user_agent = factory.Faker("user_agent")

    class Params:
        access = factory.Trait(
            token_type="access",
            jti=factory.Faker("uuid4"),
            raw_token=factory.Faker("sha256"),
            expires_at=factory.LazyFunction(lambda: datetime.now(UTC) + timedelta(minutes=15)),
        )
        expired = factory.Trait(
            expires_at=factory.LazyFunction(lambda: datetime.now(UTC) - timedelta(seconds=1)),
        )
