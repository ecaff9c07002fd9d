"""
ATS scorer.
Scores a resume against a job description with a fixed point budget and
reports which job keywords the resume covers.
"""

import math
from typing import List

from .models import ATSScore, JobDescription, ResumeData


ATS_FRIENDLY_FORMATTING = [
    "Use standard fonts: Arial, Calibri, or Times New Roman",
    "Keep file format as .docx or .pdf",
    "Use clear section headers (EXPERIENCE, EDUCATION, SKILLS)",
    "Avoid tables, graphics, and special formatting",
    "Use bullet points for easy scanning",
    "Include relevant keywords from the job description",
    "Keep to 1-2 pages",
    "Use consistent date formatting",
    "Avoid headers, footers, and unusual spacing",
]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_resume_text(resume: ResumeData) -> str:
    """Lower-cased text of everything a keyword could match against."""
    parts = [
        resume.contact.name,
        resume.summary,
        " ".join(resume.skills),
        " ".join(
            f"{e.title} {e.company} {' '.join(e.description)}" for e in resume.experience
        ),
        " ".join(f"{e.degree} {e.field} {e.institution}" for e in resume.education),
    ]
    if resume.projects:
        parts.append(" ".join(
            f"{p.title} {p.description} {' '.join(p.technologies)}" for p in resume.projects
        ))

    return " ".join(p for p in parts if p).lower()


def keyword_variations(keyword: str) -> List[str]:
    """Alternate spellings of a keyword: c++ / c plus / c, c# / csharp, node.js / nodejs."""
    keyword = keyword.lower()
    variations = [keyword]

    if "+" in keyword:
        variations.append(keyword.replace("+", " plus", 1))
        variations.append(keyword.replace("+", ""))

    if "#" in keyword:
        variations.append(keyword.replace("#", "sharp", 1))
        variations.append(keyword.replace("#", "", 1))

    if "." in keyword:
        variations.append(keyword.replace(".", ""))

    if "-" in keyword:
        variations.append(keyword.replace("-", " ", 1))

    return list(dict.fromkeys(variations))


def find_matching_keywords(resume_text: str, keywords: List[str]) -> List[str]:
    """Keywords (in the given order) with any variation present in the resume text."""
    return [
        keyword for keyword in keywords
        if any(v in resume_text for v in keyword_variations(keyword))
    ]


def job_keywords(job: JobDescription) -> List[str]:
    """Lower-cased job skills then requirements, first occurrence wins."""
    return list(dict.fromkeys(k.lower() for k in [*job.skills, *job.requirements]))


class ATSScorer:
    """Fixed-budget ATS scoring. Section caps add up to 100."""

    EMAIL_POINTS = 3
    PHONE_POINTS = 3
    NAME_POINTS = 4
    SUMMARY_POINTS = 5
    POINTS_PER_SKILL = 2
    SKILLS_CAP = 15
    POINTS_PER_EXPERIENCE = 8
    EXPERIENCE_CAP = 30
    POINTS_PER_DEGREE = 7
    EDUCATION_CAP = 15
    KEYWORD_CAP = 25
    FORMATTING_POINTS = 5

    MIN_SKILLS = 10
    MIN_BULLETS = 3
    MAX_MISSING_REPORTED = 5

    def analyze(self, resume: ResumeData, job: JobDescription) -> ATSScore:
        """Score the resume and collect matched/missing keywords and suggestions."""
        resume_text = build_resume_text(resume)
        keywords = job_keywords(job)

        matched = find_matching_keywords(resume_text, keywords)
        matched_set = set(matched)
        missing = [k for k in keywords if k not in matched_set]

        if keywords:
            match_percentage = round_half_up(len(matched) / len(keywords) * 100)
        else:
            match_percentage = 0

        return ATSScore(
            score=self.score(resume, job),
            match_percentage=match_percentage,
            keyword_matches=matched,
            missing_keywords=missing,
            improvements=self.improvements(resume, missing),
        )

    def base_score(self, resume: ResumeData) -> int:
        """Everything except the keyword component."""
        score = 0

        if resume.contact.email:
            score += self.EMAIL_POINTS
        if resume.contact.phone:
            score += self.PHONE_POINTS
        if resume.contact.name:
            score += self.NAME_POINTS

        if resume.summary and resume.summary.strip():
            score += self.SUMMARY_POINTS

        score += min(self.SKILLS_CAP, len(resume.skills) * self.POINTS_PER_SKILL)
        score += min(self.EXPERIENCE_CAP, len(resume.experience) * self.POINTS_PER_EXPERIENCE)
        score += min(self.EDUCATION_CAP, len(resume.education) * self.POINTS_PER_DEGREE)

        # Formatting is assumed to be ATS friendly
        score += self.FORMATTING_POINTS

        return score

    def keyword_score(self, resume: ResumeData, job: JobDescription) -> float:
        keywords = job_keywords(job)
        if not keywords:
            return 0.0

        matched = find_matching_keywords(build_resume_text(resume), keywords)
        return min(float(self.KEYWORD_CAP), len(matched) / len(keywords) * self.KEYWORD_CAP)

    def score(self, resume: ResumeData, job: JobDescription) -> int:
        total = self.base_score(resume) + self.keyword_score(resume, job)
        return min(100, round_half_up(total))

    def improvements(self, resume: ResumeData, missing_keywords: List[str]) -> List[str]:
        """Suggestions, in rule order."""
        improvements = []

        if not (resume.summary and resume.summary.strip()):
            improvements.append("Add a professional summary that highlights key skills")

        if len(resume.skills) < self.MIN_SKILLS:
            improvements.append(
                f"Add more skills (currently have {len(resume.skills)}, aim for {self.MIN_SKILLS}+)"
            )

        if not resume.experience:
            improvements.append("Add professional experience details")

        if not resume.education:
            improvements.append("Add education information")

        critical_missing = missing_keywords[:self.MAX_MISSING_REPORTED]
        if critical_missing:
            improvements.append(f"Incorporate key skills: {', '.join(critical_missing)}")

        for exp in resume.experience:
            if len(exp.description) < self.MIN_BULLETS:
                improvements.append(
                    f"Add more bullet points to {exp.title} role (currently {len(exp.description)})"
                )

        resume_text = build_resume_text(resume)
        if "achievements" not in resume_text and "accomplishments" not in resume_text:
            improvements.append("Quantify achievements with metrics and results")

        return improvements


def analyze_ats_compatibility(resume: ResumeData, job: JobDescription) -> ATSScore:
    """Convenience function to score a resume against a job description."""
    scorer = ATSScorer()
    return scorer.analyze(resume, job)


def calculate_score(resume: ResumeData, job: JobDescription) -> int:
    """Weighted 0-100 ATS score only."""
    return ATSScorer().score(resume, job)
