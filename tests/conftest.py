"""Shared fixtures: sample resumes, job descriptions and a scripted language model."""

from typing import List, Union

import pytest

from resumematch.llm import TextCompletionClient
from resumematch.models import ContactInfo, Education, Experience, JobDescription, ResumeData


class ScriptedClient(TextCompletionClient):
    """Returns canned replies in order and records every prompt it was sent."""

    def __init__(self, replies: List[Union[str, Exception]]):
        self.replies = list(replies)
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def scripted_client():
    """Factory: scripted_client(reply1, reply2, ...)"""
    def make(*replies):
        return ScriptedClient(list(replies))
    return make


@pytest.fixture
def complete_resume() -> ResumeData:
    return ResumeData(
        contact=ContactInfo(
            name="Jane Doe",
            email="jane@example.com",
            phone="555-123-4567",
            location="Austin, TX",
        ),
        summary="Backend engineer focused on Python services.",
        skills=["Python", "Django", "PostgreSQL", "Docker", "Kubernetes"],
        experience=[
            Experience(
                title="Senior Engineer",
                company="Acme Corp",
                start_date="Jan 2020",
                is_currently_working=True,
                description=[
                    "Built REST APIs serving 2M requests per day",
                    "Led migration from monolith to microservices",
                    "Mentored four engineers",
                ],
            ),
            Experience(
                title="Engineer",
                company="Beta Inc",
                start_date="2016",
                end_date="2019",
                description=["Wrote integration tests", "Maintained CI pipeline"],
            ),
        ],
        education=[
            Education(
                institution="State University",
                degree="B.S.",
                field="Computer Science",
                graduation_date="2015",
            ),
        ],
    )


@pytest.fixture
def backend_job() -> JobDescription:
    return JobDescription(
        title="Backend Engineer",
        company="Initech",
        description="We need a backend engineer with Python, Docker and AWS.",
        requirements=[],
        skills=["python", "docker", "aws"],
    )


JOB_POSTING = """Senior Backend Engineer

Requirements:
- 5+ years of Python experience
- Experience with Docker and Kubernetes
- Strong SQL skills
- SQL

Nice to have:
- Go
"""


@pytest.fixture
def job_posting() -> str:
    return JOB_POSTING
