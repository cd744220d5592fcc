from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class LedgerModel(BaseModel):
    """Base for ledger documents. Accepts both snake_case and the stored camelCase keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
