from pydantic import BaseModel, ConfigDict
from typing import Any, Dict

class SchemaBase(BaseModel):
    """
    Base class for all schemas in the page composer.
    Enforces strict fields and provides safe serialization.

    Fields that the produced contract spells in camelCase (sectionId, targetWords, ...)
    declare an alias; both spellings are accepted on input, the alias is used on output.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_dict(self, *, exclude_none: bool = True) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)
