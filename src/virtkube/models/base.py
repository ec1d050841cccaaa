# src/virtkube/models/base.py
"""
Shared base models. Kubernetes and Gardener objects travel as camelCase
JSON/YAML, while the Python side uses snake_case attribute names.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, model_serializer, model_validator
from pydantic.alias_generators import to_camel


class KubeModel(BaseModel):
    """Base for every object read from or written to the Kubernetes API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_dict(self) -> dict:
        """Returns the camelCase representation, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RawExtension(BaseModel):
    """
    An opaque provider payload, kept as the raw bytes it was received with.

    Kubernetes embeds provider configuration as a nested JSON object; we keep
    its serialized form so that decoding happens exactly once, at the
    boundary, with the decoder the caller chooses.
    """

    raw: bytes = b""

    @model_validator(mode="before")
    @classmethod
    def _from_embedded(cls, data: Any) -> Any:
        if isinstance(data, bytes):
            return {"raw": data}
        if isinstance(data, str):
            return {"raw": data.encode("utf-8")}
        if isinstance(data, dict) and set(data) != {"raw"}:
            return {"raw": json.dumps(data, separators=(",", ":")).encode("utf-8")}
        return data

    @model_serializer
    def _to_embedded(self) -> Any:
        try:
            return json.loads(self.raw)
        except ValueError:
            return self.raw.decode("utf-8", errors="replace")


def flatten_object_metadata(obj: dict) -> dict:
    """
    Turns a Kubernetes manifest into the flat shape our models use: metadata
    name and namespace move to the top level, apiVersion and kind are dropped.
    """
    metadata = obj.get("metadata") or {}
    body = {k: v for k, v in obj.items() if k not in ("metadata", "apiVersion", "kind")}
    if "name" in metadata:
        body["name"] = metadata["name"]
    if metadata.get("namespace"):
        body["namespace"] = metadata["namespace"]
    return body
