"""Request bodies accepted by the ops API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CustomEndpointRequest(BaseModel):
    """Body of ``PUT /endpoints/override``."""

    url: str = Field(min_length=1, max_length=2048)


class RpcCallRequest(BaseModel):
    """Body of ``POST /rpc``."""

    method: str = Field(min_length=1, max_length=128)
    params: list[Any] = Field(default_factory=list)
