"""Identity contract shared by the identity service and the session bootstrap."""

from typing import Optional

from pydantic import BaseModel, Field


class Identity(BaseModel):
    """
    An anonymous identity issued by the identity service.

    `uid` is the only part the journal uses for logic (owner of entries).
    Tokens are kept for refreshing the session and must never be logged.
    """
    uid: str = Field(min_length=1)
    id_token: Optional[str] = Field(default=None, repr=False)
    refresh_token: Optional[str] = Field(default=None, repr=False)

    model_config = {"frozen": True}

    @property
    def short_uid(self) -> str:
        """First ten characters of the uid, as shown on the capture screen."""
        return f"{self.uid[:10]}..."
