from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional, Union

Number = Optional[Union[int, float, str]]


class EventCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    eventName: Optional[str] = None
    eventType: Optional[str] = None
    eventDescription: Optional[str] = None
    campus: Optional[str] = None
    venue: Optional[str] = None
    duration: Optional[str] = None
    startDate: Optional[str] = None
    startTime: Optional[str] = None
    endDate: Optional[str] = None
    endTime: Optional[str] = None
    maxParticipants: Number = None
    registrationFees: Number = None
    numberOfVolunteers: Number = None
    prerequisites: Optional[str] = None
    estimatedBudget: Number = None
    budgetBreakdown: Optional[Any] = None
    sponsorshipNeeded: bool = False
    additionalNotes: Optional[str] = None
    creatorName: Optional[str] = None


class EventUpdate(BaseModel):
    """Partial edit; only the fields sent are changed"""
    model_config = ConfigDict(extra="allow")


class EventStatusUpdate(BaseModel):
    status: str


class EventReview(BaseModel):
    approval_status: str = Field(..., alias="approvalStatus")
    comments: str = ""

    model_config = ConfigDict(populate_by_name=True)
