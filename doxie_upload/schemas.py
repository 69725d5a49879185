from typing import Union
from pydantic import BaseModel, ConfigDict


class Stored(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Relative to the upload root
    path: str


class NoFileField(BaseModel):
    model_config = ConfigDict(frozen=True)


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    cause: Exception


UploadResult = Union[Stored, NoFileField, Failure]
