"""Marshmallow schemas for the hub's JSON request bodies."""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate


class BaseSchema(Schema):
    """Base schema: ordered output, unknown keys ignored."""

    class Meta:
        ordered = True
        unknown = EXCLUDE


class ScopeList(fields.Field):
    """Accept scopes as a list of strings or a space-separated string."""

    def _deserialize(self, value: Any, attr: str | None, data: Any, **kwargs: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return value.split()
        if isinstance(value, list | tuple) and all(isinstance(item, str) for item in value):
            return [item for item in value if item]
        raise ValidationError("Must be a list of strings or a space-separated string.")


class VerifyRequestSchema(BaseSchema):
    """Input payload for ``POST /mcp-auth/verify``."""

    token = fields.String(required=True, validate=validate.Length(min=1))
    required_scope = ScopeList(load_default=list)


class RefreshRequestSchema(BaseSchema):
    """Input payload for ``POST /mcp-auth/refresh``.

    Both fields are optional here; the refresher reports which one is wrong.
    """

    grant_type = fields.String(load_default=None, allow_none=True)
    refresh_token = fields.String(load_default=None, allow_none=True)


class RevokeRequestSchema(BaseSchema):
    """Input payload for ``POST /mcp-auth/revoke`` (RFC 7009)."""

    token = fields.String(required=True, validate=validate.Length(min=1))
    token_type_hint = fields.String(load_default=None, allow_none=True)
    reason = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=255))


class DispatchMetadataSchema(BaseSchema):
    idempotency_key = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=255))
    correlation_id = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=128))


class DispatchRequestSchema(BaseSchema):
    """Event envelope for ``POST /mcp-router/dispatch``.

    Presence of ``event_type``/``source_service`` is checked by the router so
    the caller gets ``missing_field`` rather than a generic payload error.
    """

    event_type = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=128))
    source_service = fields.String(load_default=None, allow_none=True)
    target_service = fields.String(load_default=None, allow_none=True)
    payload = fields.Dict(keys=fields.String(), load_default=dict)
    priority = fields.String(load_default="normal")
    metadata = fields.Nested(DispatchMetadataSchema, load_default=dict)
