"""
Pydantic base models shared by game logic and the HTTP layer.

Clients speak camelCase JSON; Python code uses snake_case attributes.
WireModel maps between the two so domain models can be dumped straight
into responses with ``model_dump(by_alias=True)``.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Immutable model serialized with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Guess(StrEnum):
    """Player's call on the hidden item: is its value higher or lower than the shown one."""

    UP = "up"
    DOWN = "down"
