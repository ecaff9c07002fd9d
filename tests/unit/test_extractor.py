"""Tests for keyword extraction from job postings."""

import pytest

from resumematch.extractor import (
    JobKeywords,
    JobPostingExtractor,
    extract_keywords,
    extract_requirements,
    extract_skills,
    job_from_text,
)


@pytest.mark.unit
class TestRequirements:

    def test_bullets_of_requirements_section(self, job_posting):
        assert extract_requirements(job_posting) == [
            "5+ years of Python experience",
            "Experience with Docker and Kubernetes",
            "Strong SQL skills",
        ]

    def test_short_bullets_dropped(self, job_posting):
        assert "SQL" not in extract_requirements(job_posting)

    def test_section_stops_at_nice_to_have(self, job_posting):
        assert "Go" not in extract_requirements(job_posting)

    def test_no_section_gives_empty_list(self):
        text = "We build rockets.\n- Fast paced team\n- Great benefits"
        assert extract_requirements(text) == []

    def test_qualifications_header(self):
        text = "Qualifications\n* Degree in a technical field\n* Comfortable with on-call"
        assert extract_requirements(text) == [
            "Degree in a technical field",
            "Comfortable with on-call",
        ]


@pytest.mark.unit
class TestSkills:

    def test_vocabulary_order_then_years(self, job_posting):
        assert extract_skills(job_posting) == ["python", "sql", "docker", "kubernetes", "5+ years"]

    def test_case_insensitive(self):
        assert extract_skills("TERRAFORM and GraphQL") == ["terraform", "graphql"]

    def test_first_years_phrase_only(self):
        skills = extract_skills("3 years of Go, 7 years of management")
        assert "3 years" in skills
        assert "7 years" not in skills

    def test_no_duplicates(self):
        skills = extract_skills("docker docker Docker")
        assert skills.count("docker") == 1

    def test_custom_vocabulary(self):
        extractor = JobPostingExtractor(vocabulary=["cobol"])
        assert extractor.extract_skills("COBOL and Python") == ["cobol"]


@pytest.mark.unit
class TestJobKeywords:

    def test_extract_keywords(self, job_posting):
        keywords = extract_keywords(job_posting)
        assert isinstance(keywords, JobKeywords)
        assert "python" in keywords.skills
        assert len(keywords.requirements) == 3

    def test_all_keywords_dedupes(self):
        keywords = JobKeywords(requirements=["python", "on-call"], skills=["python", "aws"])
        assert keywords.all_keywords == ["python", "aws", "on-call"]

    def test_job_from_text_defaults(self, job_posting):
        job = job_from_text(job_posting, url="https://example.com/jobs/1")
        assert job.title == "Unknown Position"
        assert job.company == "Unknown Company"
        assert job.description == job_posting
        assert job.url == "https://example.com/jobs/1"
        assert job.extracted_at is not None
        assert "docker" in job.skills
