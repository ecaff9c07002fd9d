"""
Resume, job description and application models.

Attributes are snake_case in Python; the JSON shape (HTTP bodies, stored
records, language-model replies) uses camelCase aliases.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.utcnow()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys and JSON-compatible values."""
        return self.model_dump(by_alias=True, mode="json")


class ContactInfo(CamelModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    website: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None


class Experience(CamelModel):
    """A role with its bullet points, most relevant first."""
    title: str
    company: str
    location: Optional[str] = None
    start_date: str = ""
    end_date: Optional[str] = None
    is_currently_working: bool = False
    description: List[str] = Field(default_factory=list)

    @property
    def date_range(self) -> str:
        if self.end_date and not self.is_currently_working:
            return f"{self.start_date} – {self.end_date}"
        return f"{self.start_date} – Present"


class Education(CamelModel):
    institution: str
    degree: str
    field: str = ""
    graduation_date: str = ""
    gpa: Optional[str] = None
    achievements: Optional[List[str]] = None


class Project(CamelModel):
    title: str
    description: str = ""
    technologies: List[str] = Field(default_factory=list)
    link: Optional[str] = None
    date: Optional[str] = None


class ResumeData(CamelModel):
    """A complete resume. The master resume and tailored copies share this shape."""
    contact: ContactInfo = Field(default_factory=ContactInfo)
    summary: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: List[Experience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    projects: Optional[List[Project]] = None
    certifications: Optional[List[str]] = None


class JobDescription(CamelModel):
    """Structured job posting. Built once per tailoring attempt."""
    model_config = ConfigDict(frozen=True)

    title: str
    company: str
    location: Optional[str] = None
    description: str = ""
    requirements: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    extracted_at: Optional[datetime] = None


class ATSScore(CamelModel):
    """
    Result of scoring a resume against a job description.

    ``score`` is the weighted 0-100 ATS score; ``match_percentage`` is the plain
    share of job keywords found in the resume. They are computed separately.
    """
    model_config = ConfigDict(frozen=True)

    score: int = Field(default=0, ge=0, le=100)
    match_percentage: int = Field(default=0, ge=0, le=100)
    keyword_matches: List[str] = Field(default_factory=list)
    missing_keywords: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


class ApplicationStatus(str, Enum):
    APPLIED = "applied"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"


class ApplicationRecord(CamelModel):
    """A saved application. Only ``status`` and ``updated_at`` change after creation."""
    id: Optional[str] = None
    user_id: str
    job_title: str
    company: str
    job_url: Optional[str] = None
    job_description: JobDescription
    original_resume: ResumeData
    tailored_resume: ResumeData
    ats_score: int = Field(ge=0, le=100)
    match_percentage: int = Field(ge=0, le=100)
    applied_date: datetime = Field(default_factory=utcnow)
    status: ApplicationStatus = ApplicationStatus.APPLIED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class User(CamelModel):
    id: Optional[str] = None
    email: str = ""
    master_resume: Optional[ResumeData] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
