"""Shared pydantic base for records exchanged with the widget API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire.

    Accepts either spelling on input; ``model_dump(by_alias=True)``
    produces the camelCase payload the widget endpoints speak.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)
