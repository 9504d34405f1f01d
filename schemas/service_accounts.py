"""Pydantic models for service-account endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceAccountRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    description: Optional[str] = None


class ServiceAccount(BaseModel):
    """Credential principal used to authenticate to a Kafka instance.

    ``client_secret`` is only populated on creation and credential reset.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    kind: Optional[str] = None
    href: Optional[str] = None
    description: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    owner: Optional[str] = None
    created_at: Optional[str] = None


class ServiceAccountList(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: Optional[str] = None
    items: List[ServiceAccount] = Field(default_factory=list)


__all__ = ["ServiceAccount", "ServiceAccountList", "ServiceAccountRequest"]
