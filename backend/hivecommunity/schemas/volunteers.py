from pydantic import BaseModel, ConfigDict
from typing import List, Optional, Union


class OpportunityCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    description: Optional[str] = None
    eventId: Optional[str] = None
    maxVolunteers: Optional[Union[int, str]] = None
    requirements: Optional[str] = None
    isActive: bool = True


class OpportunityActivation(BaseModel):
    isActive: bool


class VolunteerApply(BaseModel):
    """Name, email and hive come from the member's approved record"""
    phone: str = ""
    skills: List[str] = []
    experience: str = ""
    availability: str = ""
    motivation: str = ""


class ApplicationReview(BaseModel):
    note: str = ""


class MarkReadResponse(BaseModel):
    success: bool
