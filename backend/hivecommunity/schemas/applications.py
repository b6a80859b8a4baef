from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, List, Optional


class SelectedHive(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    hiveName: Optional[str] = None


class HiveApplicationCreate(BaseModel):
    """Hive registration form; required fields are checked by the hive validator"""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    course: Optional[str] = None
    branch: Optional[str] = None
    year: Optional[str] = None
    codingLanguages: List[str] = []
    campusName: Optional[str] = None
    campusLocation: Optional[str] = None
    hiveName: Optional[str] = None
    expectedAudience: Optional[str] = None
    facultyAdvisorName: Optional[str] = None
    facultyAdvisorContact: Optional[str] = None
    leadershipExperience: Optional[str] = None
    longTermVision: Optional[str] = None
    termsAccepted: bool = False


class MemberApplicationCreate(BaseModel):
    """Member application form; profile fields are optional"""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    email: Optional[str] = None
    skills: List[str] = []
    interestedEvents: List[str] = []
    selectedHive: Optional[SelectedHive] = None
    heardAbout: Optional[str] = None
    mainGoal: Optional[str] = None
    termsAccepted: bool = False

    mobile: Optional[str] = None
    course: Optional[str] = None
    branch: Optional[str] = None
    year: Optional[str] = None
    collegeName: Optional[str] = None
    cgpa: Optional[str] = None


class DecisionRequest(BaseModel):
    note: str = ""


class ApplicationCreated(BaseModel):
    id: str
    status: str = "pending"


class IssuedCredentialsResponse(BaseModel):
    email: str
    password: str
    generated_at: str


class ApprovalResponse(BaseModel):
    approved_id: str
    credentials: Optional[IssuedCredentialsResponse] = None


class RejectionResponse(BaseModel):
    rejected_id: str


class PendingPageResponse(BaseModel):
    applications: List[Dict[str, Any]]
    has_more: bool


def approval_response(result) -> ApprovalResponse:
    """Response body for an ``ApprovalResult``"""
    issued = result.credentials
    return ApprovalResponse(
        approved_id=result.approved_id,
        credentials=IssuedCredentialsResponse(
            email=issued.email,
            password=issued.password,
            generated_at=issued.generated_at,
        ) if issued else None,
    )


def decision_note(decision: Optional[DecisionRequest]) -> str:
    return decision.note if decision else ""
