"""Practitioner directory schemas"""

from typing import Optional

from pydantic import BaseModel


class PractitionerResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True
