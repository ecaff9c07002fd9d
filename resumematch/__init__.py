"""
ResumeMatch

Tailors a master resume to a job posting with a language model, scores
ATS compatibility locally and keeps a log of job applications.
"""

from .extractor import extract_keywords, job_from_text, JobKeywords, JobPostingExtractor
from .scorer import analyze_ats_compatibility, ATSScorer
from .tailor import ResumeTailor, TailoringResult
from .storage import ApplicationStore, SlotStorage, build_store
from .resume_parser import parse_resume_text, load_resume_file, validate_resume
from .generator import generate_resume_docx, resume_filename
from .models import (
    ApplicationRecord,
    ApplicationStatus,
    ATSScore,
    JobDescription,
    ResumeData,
    User,
)

__version__ = "1.0.0"
__all__ = [
    "extract_keywords",
    "job_from_text",
    "analyze_ats_compatibility",
    "parse_resume_text",
    "load_resume_file",
    "validate_resume",
    "generate_resume_docx",
    "resume_filename",
    "build_store",
    "JobKeywords",
    "JobPostingExtractor",
    "ATSScorer",
    "ResumeTailor",
    "TailoringResult",
    "ApplicationStore",
    "SlotStorage",
    "ApplicationRecord",
    "ApplicationStatus",
    "ATSScore",
    "JobDescription",
    "ResumeData",
    "User",
]
