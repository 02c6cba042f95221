"""
Base class for records persisted as JSON in the key-value store.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StoredRecord(BaseModel):
    """Record serialized with camelCase keys, e.g. ``projectId``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str):
        return cls.model_validate_json(raw)
