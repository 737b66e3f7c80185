"""File payload for a content upload, independent of the backend."""

from pydantic import BaseModel, Field


class UploadFile(BaseModel):
    """
    A named binary sent with an upload request.

    synthesized is True when the bytes were built from the edited draft text
    instead of a stored original.
    """
    name: str
    mime_type: str
    data: bytes = Field(repr=False)
    synthesized: bool = False

    def as_httpx_file(self) -> tuple[str, bytes, str]:
        return (self.name, self.data, self.mime_type)
