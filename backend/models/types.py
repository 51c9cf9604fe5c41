"""Shared pydantic base used by every wire-facing model.

The dashboard speaks camelCase JSON (``profitAmount``, ``expiresAt``) while the
Python side keeps snake_case attributes. Models accept either spelling on
input and dump camelCase when ``by_alias=True``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe camelCase dict for HTTP and WebSocket payloads."""
        return self.model_dump(mode="json", by_alias=True)
