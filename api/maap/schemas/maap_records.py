from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime


class AbilityResponse(BaseModel):
    id: int
    organization_id: int
    name: str
    description: str
    milestone_1_description: Optional[str]
    milestone_2_description: Optional[str]
    milestone_3_description: Optional[str]
    milestone_4_description: Optional[str]
    milestone_5_description: Optional[str]
    semantic_version: str
    created_on: Optional[datetime]
    modified_on: Optional[datetime]

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    id: int
    company_id: int
    title: str
    tagline: Optional[str]
    required_activities: Optional[str]
    semantic_version: str
    created_on: Optional[datetime]
    modified_on: Optional[datetime]

    class Config:
        from_attributes = True


class PositionResponse(BaseModel):
    id: int
    company_id: int
    title: str
    position_summary: Optional[str]
    semantic_version: str
    created_on: Optional[datetime]
    modified_on: Optional[datetime]

    class Config:
        from_attributes = True


class ValidationErrorResponse(BaseModel):
    errors: Dict[str, List[str]]
    full_messages: List[str]
