from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Schema whose JSON keys are camelCase while Python attributes stay snake_case."""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True
