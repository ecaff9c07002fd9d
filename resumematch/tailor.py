"""
Resume tailoring pipeline.

Structures a job posting, rewrites the resume summary and experience bullets
for it, then scores the result. Each step is one language-model call; parse
failures fall back to placeholder values, transport failures propagate.
"""

from dataclasses import dataclass, field
from typing import AsyncGenerator, Dict, List

from loguru import logger

from .exceptions import MalformedResponse
from .llm import TextCompletionClient
from .models import ATSScore, JobDescription, ResumeData
from .replies import (
    EMPTY_SCORE,
    default_job_description,
    parse_job_reply,
    parse_score_reply,
    parse_tailoring_reply,
)
from .resume_parser import ensure_valid
from .scorer import analyze_ats_compatibility, build_resume_text


JOB_PROMPT = """Extract structured information from this job description.

JOB DESCRIPTION:
{job_text}

Return JSON:
{{
    "title": "job title",
    "company": "company name",
    "location": "location",
    "requirements": ["requirement 1", "requirement 2"],
    "skills": ["skill 1", "skill 2"]
}}

Return ONLY JSON."""

TAILOR_PROMPT = """You are an expert resume optimizer. Tailor this resume for this specific job.

JOB:
Title: {title}
Company: {company}
Required Skills: {skills}

ORIGINAL RESUME:
Name: {name}
Summary: {summary}
Skills: {resume_skills}

EXPERIENCE:
{experience}

Provide a tailored summary and rewritten experience descriptions that:
1. Highlight relevant skills matching the job
2. Use keywords from the job description
3. Emphasize achievements matching job requirements
4. Optimize for ATS (standard formatting, keywords used naturally)

Keep every "originalTitle" exactly as written above.

Return JSON:
{{
    "tailoredSummary": "tailored 2-3 sentence summary",
    "tailoredExperience": [
        {{"originalTitle": "Original Job Title", "newDescription": ["tailored bullet 1", "tailored bullet 2"]}}
    ],
    "keywordMatches": ["matching skill 1", "matching skill 2"]
}}

Return ONLY JSON."""

SCORE_PROMPT = """Analyze this resume against a job description for ATS (Applicant Tracking System) compatibility.

RESUME:
{resume_text}

JOB REQUIREMENTS:
{requirements}

REQUIRED SKILLS:
{skills}

Return JSON:
{{
    "score": 0-100,
    "matchPercentage": 0-100,
    "matchedKeywords": ["keyword1", "keyword2"],
    "missingKeywords": ["keyword1", "keyword2"],
    "improvements": ["improvement 1", "improvement 2"]
}}

Return ONLY JSON."""

PROFILE_PROMPT = """Analyze this resume and provide a concise summary of key strengths and areas.

Contact: {name} - {email}
Summary: {summary}
Skills: {skills}

Experience:
{experience}

Education:
{education}

Provide a 2-3 sentence analysis of this candidate's profile."""


@dataclass
class TailoringResult:
    """Result of one tailoring run."""
    tailored_resume: ResumeData
    ats_score: ATSScore
    job_description: JobDescription
    local_score: ATSScore
    degraded_steps: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when any step returned placeholder values."""
        return bool(self.degraded_steps)

    def to_dict(self) -> Dict:
        return {
            "tailoredResume": self.tailored_resume.to_json_dict(),
            "atsScore": self.ats_score.to_json_dict(),
            "jobDescription": self.job_description.to_json_dict(),
            "localScore": self.local_score.to_json_dict(),
            "degradedSteps": list(self.degraded_steps),
        }


class ResumeTailor:
    """Runs the extraction, tailoring and scoring steps against a language model."""

    def __init__(self, client: TextCompletionClient):
        self.client = client

    async def extract_job_requirements(self, job_text: str) -> JobDescription:
        """Structure a raw posting. Unparseable replies give the Unknown Position placeholder."""
        job, _ = await self._extract_job(job_text)
        return job

    async def tailor_resume_for_job(self, master: ResumeData, job: JobDescription) -> ResumeData:
        """Rewrite summary and bullets for the job. Unparseable replies return the master unchanged."""
        resume, _ = await self._tailor(master, job)
        return resume

    async def calculate_ats_score(self, resume: ResumeData, job: JobDescription) -> ATSScore:
        """Model-assessed ATS score. Unparseable replies give an all-zero score."""
        score, _ = await self._score(resume, job)
        return score

    async def analyze_master_resume(self, resume: ResumeData) -> str:
        """Short free-text analysis of a candidate profile."""
        prompt = PROFILE_PROMPT.format(
            name=resume.contact.name,
            email=resume.contact.email,
            summary=resume.summary or "No summary",
            skills=", ".join(resume.skills),
            experience="\n".join(
                f"{e.title} at {e.company} ({e.start_date} - {e.end_date or 'Present'})"
                for e in resume.experience
            ),
            education="\n".join(
                f"{e.degree} in {e.field} from {e.institution} ({e.graduation_date})"
                for e in resume.education
            ),
        )
        reply = await self.client.generate(prompt)
        return reply.strip()

    async def tailor_with_progress(
        self,
        master: ResumeData,
        job_text: str,
    ) -> AsyncGenerator[Dict, None]:
        """Tailoring with progress updates; the last item carries the result."""
        ensure_valid(master)
        degraded = []

        yield {"step": "analyzing", "message": "Analyzing job description...", "progress": 10}
        job, ok = await self._extract_job(job_text)
        if not ok:
            degraded.append("extract_job_requirements")

        yield {
            "step": "tailoring",
            "message": f"Tailoring resume for {job.title} at {job.company}...",
            "progress": 40,
            "data": {"job_title": job.title, "keywords_count": len(job.skills) + len(job.requirements)}
        }
        tailored, ok = await self._tailor(master, job)
        if not ok:
            degraded.append("tailor_resume_for_job")

        yield {"step": "scoring", "message": "Calculating ATS score...", "progress": 70}
        score, ok = await self._score(tailored, job)
        if not ok:
            degraded.append("calculate_ats_score")

        local_score = analyze_ats_compatibility(tailored, job)

        yield {"step": "complete", "message": "Done!", "progress": 100}

        result = TailoringResult(
            tailored_resume=tailored,
            ats_score=score,
            job_description=job,
            local_score=local_score,
            degraded_steps=degraded,
        )
        if degraded:
            logger.warning(f"Tailoring finished with placeholder output from: {', '.join(degraded)}")
        else:
            logger.info(f"Tailored resume for {job.title} at {job.company} (score {score.score})")

        yield {"step": "result", "result": result}

    async def tailor(self, master: ResumeData, job_text: str) -> TailoringResult:
        """Non-streaming version of tailor_with_progress."""
        result = None
        async for update in self.tailor_with_progress(master, job_text):
            if update.get("step") == "result":
                result = update["result"]
        return result

    async def _extract_job(self, job_text: str):
        reply = await self.client.generate(JOB_PROMPT.format(job_text=job_text))
        try:
            return parse_job_reply(reply, job_text), True
        except MalformedResponse as e:
            logger.warning(f"Could not parse job requirements, using placeholder: {e.message}")
            return default_job_description(job_text), False

    async def _tailor(self, master: ResumeData, job: JobDescription):
        prompt = TAILOR_PROMPT.format(
            title=job.title,
            company=job.company,
            skills=", ".join(job.skills),
            name=master.contact.name,
            summary=master.summary or "No summary",
            resume_skills=", ".join(master.skills),
            experience="\n\n".join(
                f"{e.title} at {e.company}: {' '.join(e.description)}" for e in master.experience
            ),
        )
        reply = await self.client.generate(prompt)
        try:
            parsed = parse_tailoring_reply(reply)
        except MalformedResponse as e:
            logger.warning(f"Could not parse tailored resume, keeping master: {e.message}")
            return master, False

        tailored = master.model_copy(deep=True)
        if parsed.tailored_summary:
            tailored.summary = parsed.tailored_summary

        for exp in tailored.experience:
            match = next(
                (t for t in parsed.tailored_experience if t.original_title == exp.title),
                None,
            )
            if match and match.new_description:
                exp.description = list(match.new_description)

        return tailored, True

    async def _score(self, resume: ResumeData, job: JobDescription):
        prompt = SCORE_PROMPT.format(
            resume_text=build_resume_text(resume),
            requirements=", ".join(job.requirements),
            skills=", ".join(job.skills),
        )
        reply = await self.client.generate(prompt)
        try:
            return parse_score_reply(reply), True
        except MalformedResponse as e:
            logger.warning(f"Could not parse ATS score, using zero score: {e.message}")
            return EMPTY_SCORE, False
