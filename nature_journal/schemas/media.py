"""Device media contracts: acquisition modes, permission answers, picker results."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator


class AcquisitionMode(str, Enum):
    CAMERA = "camera"
    GALLERY = "gallery"


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"


class PickResult(BaseModel):
    """
    Outcome of one picker invocation.

    Either `cancelled` is True, or `local_uri` points at the acquired image.
    `temporary` marks files the picker created itself (camera captures in the
    staging directory); the composer removes those once they are no longer
    staged.
    """
    cancelled: bool = False
    local_uri: Optional[str] = None
    temporary: bool = False

    @model_validator(mode="after")
    def check_uri_present(self) -> "PickResult":
        if not self.cancelled and not self.local_uri:
            raise ValueError("A non-cancelled pick must carry a local_uri")
        return self

    @classmethod
    def cancelled_result(cls) -> "PickResult":
        return cls(cancelled=True)
