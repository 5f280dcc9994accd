"""Base model for documents kept in the document store"""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """
    Stored field names are camelCase; Python attributes are snake_case.
    Both spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_document(self) -> Dict[str, Any]:
        """Serialize for the store (camelCase keys, no None values)"""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
