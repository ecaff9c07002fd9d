"""
Keyword extractor for job postings.
Pulls a requirements list and known technology/skill terms out of free text.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .models import JobDescription


# Known skill vocabulary, scanned in this order
SKILL_VOCABULARY = [
    # languages
    'javascript', 'typescript', 'python', 'java', 'golang', 'rust', 'scala',
    'kotlin', 'swift', 'ruby', 'php', 'c++', 'c#', 'matlab', 'bash', 'shell',
    'sql', 'html', 'css',
    # frameworks
    'react', 'vue', 'angular', 'next.js', 'node', 'express', 'django', 'flask',
    'fastapi', 'spring', '.net', 'rails',
    # cloud & infrastructure
    'aws', 'gcp', 'azure', 'docker', 'kubernetes', 'terraform', 'ansible',
    'linux', 'unix', 'serverless', 'microservices', 'ci/cd', 'devops', 'jenkins',
    'git',
    # data stores
    'mongodb', 'postgres', 'mysql', 'nosql', 'redis', 'elasticsearch',
    'cassandra', 'dynamodb', 'firebase', 'oracle', 'snowflake',
    # data & ml
    'tensorflow', 'pytorch', 'keras', 'scikit-learn', 'pandas', 'numpy',
    'spark', 'hadoop', 'kafka', 'rabbitmq', 'airflow', 'machine learning',
    'deep learning', 'nlp', 'computer vision', 'data science', 'data analysis',
    'big data', 'etl', 'tableau', 'power bi', 'excel', 'iot',
    # apis
    'rest api', 'graphql', 'api design',
    # methodologies & tools
    'agile', 'scrum', 'kanban', 'jira', 'salesforce', 'sap', 'powerpoint', 'word',
    # security
    'security', 'encryption', 'oauth', 'jwt',
    # testing
    'testing', 'unit testing', 'integration testing', 'performance testing',
    'load testing',
]

# Section headers that open a requirements block, and what closes it
REQUIREMENTS_SECTION = r'(?:requirement|skill|qualification|must have|should have)[\s\S]*?(?:nice to have|about|\Z)'

# A bullet marker followed by the rest of its line
BULLET_PATTERN = r'[•\-*]\s+([^\n]+)'

# "5 years", "3+ years", "1 year"
YEARS_PATTERN = r'(\d+)\+?\s*years?'

MIN_REQUIREMENT_LENGTH = 5


@dataclass
class JobKeywords:
    """Requirements and skills pulled from a posting."""
    requirements: List[str] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)

    @property
    def all_keywords(self) -> List[str]:
        """Skills then requirements, without repeats."""
        return list(dict.fromkeys(self.skills + self.requirements))


class JobPostingExtractor:
    """Extract requirements and skills from job posting text."""

    def __init__(self, vocabulary: Optional[List[str]] = None):
        self.vocabulary = vocabulary if vocabulary is not None else SKILL_VOCABULARY
        self.section_pattern = re.compile(REQUIREMENTS_SECTION, re.IGNORECASE)
        self.bullet_pattern = re.compile(BULLET_PATTERN)
        self.years_pattern = re.compile(YEARS_PATTERN, re.IGNORECASE)

    def extract(self, text: str) -> JobKeywords:
        """Extract everything from a posting."""
        return JobKeywords(
            requirements=self.extract_requirements(text),
            skills=self.extract_skills(text),
        )

    def extract_requirements(self, text: str) -> List[str]:
        """Bullet lines of the first requirements-like section."""
        section = self.section_pattern.search(text)
        if not section:
            return []

        requirements = []
        for match in self.bullet_pattern.finditer(section.group(0)):
            cleaned = match.group(1).strip()
            if len(cleaned) > MIN_REQUIREMENT_LENGTH:
                requirements.append(cleaned)

        return requirements

    def extract_skills(self, text: str) -> List[str]:
        """Vocabulary terms found in the text, plus the first years-of-experience phrase."""
        text_lower = text.lower()
        found = {}

        for skill in self.vocabulary:
            if skill in text_lower:
                found[skill] = None

        years = self.years_pattern.search(text)
        if years:
            found[years.group(0)] = None

        return list(found)


def extract_keywords(text: str) -> JobKeywords:
    """Convenience function to extract keywords from a job posting."""
    extractor = JobPostingExtractor()
    return extractor.extract(text)


def extract_requirements(text: str) -> List[str]:
    return JobPostingExtractor().extract_requirements(text)


def extract_skills(text: str) -> List[str]:
    return JobPostingExtractor().extract_skills(text)


def job_from_text(
    text: str,
    title: str = "Unknown Position",
    company: str = "Unknown Company",
    location: Optional[str] = None,
    url: Optional[str] = None,
) -> JobDescription:
    """Build a job description from raw text without calling a language model."""
    keywords = extract_keywords(text)
    return JobDescription(
        title=title,
        company=company,
        location=location,
        description=text,
        requirements=keywords.requirements,
        skills=keywords.skills,
        url=url,
        extracted_at=datetime.utcnow(),
    )
