from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from bizledger.models.base import PyObjectId


class DocumentResponse(BaseModel):
    """Base for responses built from Mongo documents (``_id`` -> ``id``)."""
    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"), serialization_alias="id")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class OwnedResponse(DocumentResponse):
    owner_id: PyObjectId


class RequestModel(BaseModel):
    """Request bodies; enums are kept as their stored string values."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class UpdateModel(RequestModel):
    """
    Partial update body.

    Omitted fields are left alone. An explicit null only clears the fields
    named in ``clearable``; on any other field it counts as omitted.
    """
    clearable: ClassVar[FrozenSet[str]] = frozenset()

    def changes(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in self.clearable
        }
