from pydantic import BaseModel


class MessageResponse(BaseModel):
    message: str


class VersionResponse(BaseModel):
    version: str
    message: str
