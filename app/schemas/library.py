"""
app/schemas/library.py

Purpose: Request bodies

- Registration and login payloads
- Admin document creation payload

Fields are optional at the schema level so that missing values are reported
with the catalogue's own 400 messages rather than a generic 422.
"""

from pydantic import BaseModel, Field
from typing import Optional


class RegisterRequest(BaseModel):
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Login email, unique")
    password: Optional[str] = Field(None, description="Plain password")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Jeanne Martin",
                "email": "jeanne@example.fr",
                "password": "secret"
            }
        }


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class DocumentCreateRequest(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    document_type: Optional[str] = Field(None, description="Defaults to 'Livre'")
    year: Optional[int] = Field(None, description="Defaults to the current year")

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Le Petit Prince",
                "author": "Antoine de Saint-Exupéry",
                "document_type": "Livre",
                "year": 1943
            }
        }
