from pydantic import BaseModel


class QuickNoteResponse(BaseModel):
    value: str = ""


class QuickNoteUpdate(BaseModel):
    content: str

    class Config:
        extra = "forbid"
