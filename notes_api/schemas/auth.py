from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """Identity resolved from the bearer token for one request"""
    id: str

    class Config:
        frozen = True
