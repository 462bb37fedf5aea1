#!/usr/bin/env python3
"""
Confluent Ops Toolkit
Copyright (c) 2026 Paul Harvener, Data-Blitz Inc
SPDX-License-Identifier: MIT

Thin Schema Registry adapter used by the schema promoter.
"""

from dataclasses import dataclass, field
from typing import Any

import httpx
from confluent_kafka.schema_registry import Schema, SchemaRegistryClient
from confluent_kafka.schema_registry.error import SchemaRegistryError

# Registry answers for "nothing registered under this subject/version yet".
SUBJECT_NOT_FOUND = 40401
VERSION_NOT_FOUND = 40402


class RegistryError(Exception):
    """Base error for any Schema Registry call that did not succeed."""

    def __init__(self, operation: str, subject: str | None, message: str) -> None:
        self.operation = operation
        self.subject = subject
        target = f" subject={subject}" if subject else ""
        super().__init__(f"{operation}{target}: {message}")


class RegistryTransportError(RegistryError):
    """The remote call could not be completed (DNS, TLS, timeout, connection reset)."""


class RegistryApiError(RegistryError):
    """The registry answered with an error payload carrying an error_code."""

    def __init__(
        self,
        operation: str,
        subject: str | None,
        message: str,
        error_code: int = -1,
        http_status: int = -1,
    ) -> None:
        self.error_code = error_code
        self.http_status = http_status
        super().__init__(operation, subject, f"error_code={error_code} http_status={http_status} {message}")

    @property
    def not_found(self) -> bool:
        """Return True when the error means the subject or version does not exist."""
        return self.error_code in {SUBJECT_NOT_FOUND, VERSION_NOT_FOUND}


@dataclass(frozen=True)
class RegistryEndpoint:
    """Connection parameters for one Schema Registry: base URL plus an API key/secret pair."""

    url: str
    api_key: str = ""
    api_secret: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", self.url.strip().rstrip("/"))

    def client_config(self) -> dict[str, str]:
        """Return SchemaRegistryClient config with Basic auth when credentials are set."""
        conf = {"url": self.url}
        if self.api_key or self.api_secret:
            conf["basic.auth.user.info"] = f"{self.api_key}:{self.api_secret}"
        return conf


class SchemaRegistry:
    """Schema Registry operations needed for promotion, with errors normalized to RegistryError."""

    def __init__(self, endpoint: RegistryEndpoint, client: Any = None) -> None:
        """Wrap an existing client or build a SchemaRegistryClient for the endpoint."""
        self.endpoint = endpoint
        self.client = client if client is not None else SchemaRegistryClient(endpoint.client_config())

    @property
    def url(self) -> str:
        return self.endpoint.url

    def _call(self, operation: str, subject: str | None, fn, *args, **kwargs):
        """Run one client call and translate failures into the registry error taxonomy."""
        try:
            return fn(*args, **kwargs)
        except SchemaRegistryError as exc:
            raise RegistryApiError(
                operation,
                subject,
                str(getattr(exc, "error_message", exc)),
                error_code=int(getattr(exc, "error_code", -1)),
                http_status=int(getattr(exc, "http_status_code", -1)),
            ) from exc
        except (httpx.HTTPError, OSError) as exc:
            raise RegistryTransportError(operation, subject, str(exc)) from exc

    def list_subjects(self) -> list[str]:
        """GET /subjects, preserving the registry's listing order."""
        return list(self._call("list_subjects", None, self.client.get_subjects))

    def latest_schema(self, subject: str) -> Any:
        """GET /subjects/{subject}/versions/latest."""
        return self._call("latest_schema", subject, self.client.get_latest_version, subject)

    def set_compatibility(self, subject: str, level: str) -> str:
        """PUT /config/{subject} with the requested compatibility level."""
        return self._call("set_compatibility", subject, self.client.set_compatibility, subject_name=subject, level=level)

    def check_compatibility(self, subject: str, schema: Schema) -> bool:
        """POST /compatibility/subjects/{subject}/versions/latest and return is_compatible."""
        return bool(
            self._call(
                "check_compatibility",
                subject,
                self.client.test_compatibility,
                subject_name=subject,
                schema=schema,
                version="latest",
            )
        )

    def register_schema(self, subject: str, schema: Schema) -> int:
        """POST /subjects/{subject}/versions and return the registry-assigned schema id."""
        return int(self._call("register_schema", subject, self.client.register_schema, subject_name=subject, schema=schema))
