"""
Resume parsing and validation.
Turns uploaded DOCX/plain-text resumes into ResumeData and checks that a
resume has what tailoring needs.
"""

import re
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import docx

from .exceptions import ValidationError
from .models import ContactInfo, Education, Experience, Project, ResumeData


EMAIL_PATTERN = r'[\w\.-]+@[\w\.-]+\.\w+'
PHONE_PATTERN = r'(?:\+\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}'
URL_PATTERN = r'(?:https?://[^\s|,]+|www\.[^\s|,]+|(?:linkedin|github)\.com/[^\s|,]+)'

MONTH = r'(?:[A-Za-z]{3,9}\.?\s+)?'
DATE_RANGE_PATTERN = (
    rf'({MONTH}\d{{4}})\s*(?:-|–|—|to)\s*({MONTH}\d{{4}}|present|current|now)'
)
YEAR_PATTERN = r'\b(?:19|20)\d{2}\b'
DEGREE_PATTERN = r'\b(Bachelor|Master|PhD|Ph\.D\.|B\.S\.|M\.S\.|B\.A\.|M\.A\.|B\.Sc|M\.Sc|B\.Tech|M\.Tech|MBA|Associate)'
INSTITUTION_PATTERN = r'(University|College|Institute|School|Academy)'
BULLET_PREFIX = r'^\s*[•\-*▪●◦]\s*'
HEADER_SEPARATORS = r'\s+at\s+|\s*@\s*|\s*\|\s*|\s*,\s*|\s+[–—-]\s+'

# Section header text -> section name
SECTION_MAPPINGS = {
    'summary': 'summary',
    'professional summary': 'summary',
    'profile': 'summary',
    'objective': 'summary',
    'about me': 'summary',
    'skills': 'skills',
    'technical skills': 'skills',
    'core competencies': 'skills',
    'technologies': 'skills',
    'experience': 'experience',
    'work experience': 'experience',
    'professional experience': 'experience',
    'employment': 'experience',
    'employment history': 'experience',
    'education': 'education',
    'academic background': 'education',
    'projects': 'projects',
    'personal projects': 'projects',
    'certifications': 'certifications',
    'certificates': 'certifications',
    'licenses & certifications': 'certifications',
}


def extract_docx_text(data: bytes) -> str:
    """Plain text of a DOCX document, one paragraph per line."""
    document = docx.Document(BytesIO(data))
    return "\n".join(p.text for p in document.paragraphs).strip()


def load_resume_file(path: Path) -> ResumeData:
    """Load a resume from JSON, DOCX or plain text."""
    path = Path(path)
    ext = path.suffix.lower()
    if ext == ".json":
        return ResumeData.model_validate_json(path.read_text(encoding="utf-8"))
    if ext == ".docx":
        return parse_resume_text(extract_docx_text(path.read_bytes()))
    if ext in (".txt", ".md"):
        return parse_resume_text(path.read_text(encoding="utf-8", errors="ignore"))
    raise ValueError(f"Unsupported resume file type: {ext}. Use JSON/DOCX/TXT")


def parse_resume_text(text: str) -> ResumeData:
    """Best-effort structure from resume text. Fields that cannot be found stay empty."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    header, sections = _split_sections(lines)

    contact = _parse_contact(text, header or lines[:1])

    return ResumeData(
        contact=contact,
        summary=" ".join(sections.get('summary', [])) or None,
        skills=_parse_skills(sections.get('skills', [])),
        experience=_parse_experience(sections.get('experience', [])),
        education=_parse_education(sections.get('education', [])),
        projects=_parse_projects(sections.get('projects', [])) or None,
        certifications=[_strip_bullet(l) for l in sections.get('certifications', [])] or None,
    )


def _section_name(line: str) -> Optional[str]:
    key = line.lower().strip().rstrip(':').strip()
    return SECTION_MAPPINGS.get(key)


def _split_sections(lines: List[str]) -> Tuple[List[str], Dict[str, List[str]]]:
    """Lines before the first header, and the lines under each known header."""
    header = []
    sections: Dict[str, List[str]] = {}
    current = None

    for line in lines:
        name = _section_name(line)
        if name:
            current = name
            sections.setdefault(current, [])
        elif current is None:
            header.append(line)
        else:
            sections[current].append(line)

    return header, sections


def _parse_contact(text: str, header: List[str]) -> ContactInfo:
    email = re.search(EMAIL_PATTERN, text)
    phone = re.search(PHONE_PATTERN, text)
    contact = ContactInfo(
        name=header[0] if header else "",
        email=email.group(0) if email else "",
        phone=phone.group(0) if phone else "",
    )

    for url in re.findall(URL_PATTERN, text, re.IGNORECASE):
        if "linkedin" in url.lower():
            contact.linkedin = contact.linkedin or url
        elif "github" in url.lower():
            contact.github = contact.github or url
        else:
            contact.website = contact.website or url

    # A line without email/phone/url after the name is usually the location
    for line in header[1:]:
        if not re.search(EMAIL_PATTERN, line) and not re.search(PHONE_PATTERN, line) \
                and not re.search(URL_PATTERN, line, re.IGNORECASE):
            contact.location = line
            break

    return contact


def _strip_bullet(line: str) -> str:
    return re.sub(BULLET_PREFIX, '', line).strip()


def _is_bullet(line: str) -> bool:
    return bool(re.match(BULLET_PREFIX, line))


def _parse_skills(lines: List[str]) -> List[str]:
    skills = {}
    for line in lines:
        line = _strip_bullet(line)
        # "Languages: Python, Go" -> drop the category label
        if ':' in line:
            line = line.split(':', 1)[1]
        for skill in re.split(r'[,|;•·]', line):
            skill = skill.strip()
            if skill:
                skills[skill] = None
    return list(skills)


def _parse_experience(lines: List[str]) -> List[Experience]:
    experiences: List[Experience] = []

    for line in lines:
        if _is_bullet(line):
            if experiences:
                experiences[-1].description.append(_strip_bullet(line))
            continue

        current = experiences[-1] if experiences else None
        # Company on its own line right below the title
        if current is not None and not current.company and not current.description:
            company, start, end, current_flag = _split_dates(line)
            parts = [p for p in re.split(HEADER_SEPARATORS, company) if p]
            current.company = parts[0] if parts else company
            if len(parts) > 1 and not current.location:
                current.location = parts[1]
            if start and not current.start_date:
                current.start_date = start
                current.end_date = end
                current.is_currently_working = current_flag
            continue

        experiences.append(_parse_experience_header(line))

    return experiences


def _split_dates(line: str) -> Tuple[str, str, Optional[str], bool]:
    """Remove a date range from a line: (rest, start, end, currently working)."""
    match = re.search(DATE_RANGE_PATTERN, line, re.IGNORECASE)
    if not match:
        return line.strip(), "", None, False

    start, end = match.group(1).strip(), match.group(2).strip()
    is_current = end.lower() in ('present', 'current', 'now')
    rest = (line[:match.start()] + line[match.end():]).strip(' |,–—-')
    return rest.strip(), start, None if is_current else end, is_current


def _parse_experience_header(line: str) -> Experience:
    rest, start, end, is_current = _split_dates(line)
    parts = [p.strip() for p in re.split(HEADER_SEPARATORS, rest) if p.strip()]

    return Experience(
        title=parts[0] if parts else rest,
        company=parts[1] if len(parts) > 1 else "",
        location=parts[2] if len(parts) > 2 else None,
        start_date=start,
        end_date=end,
        is_currently_working=is_current,
        description=[],
    )


def _parse_education(lines: List[str]) -> List[Education]:
    education: List[Education] = []

    for line in lines:
        if _is_bullet(line):
            if education:
                education[-1].achievements = (education[-1].achievements or []) + [_strip_bullet(line)]
            continue

        has_degree = re.search(DEGREE_PATTERN, line, re.IGNORECASE)
        has_institution = re.search(INSTITUTION_PATTERN, line, re.IGNORECASE)
        if not has_degree and not has_institution:
            if education:
                education[-1].achievements = (education[-1].achievements or []) + [line]
            continue

        # Institution line under a degree line (or the reverse) completes that entry
        if education:
            last = education[-1]
            if has_institution and not has_degree and not last.institution:
                last.institution = _institution_part(line)
                last.graduation_date = last.graduation_date or _year(line)
                continue
            if has_degree and not has_institution and not last.degree:
                last.degree, last.field = _degree_and_field(line)
                last.graduation_date = last.graduation_date or _year(line)
                continue

        degree, field_ = _degree_and_field(line) if has_degree else ("", "")
        education.append(Education(
            institution=_institution_part(line) if has_institution else "",
            degree=degree,
            field=field_,
            graduation_date=_year(line),
        ))

    return education


def _year(line: str) -> str:
    years = re.findall(YEAR_PATTERN, line)
    return years[-1] if years else ""


def _institution_part(line: str) -> str:
    for part in re.split(r'\s*[|,]\s*|\s+[–—-]\s+', line):
        if re.search(INSTITUTION_PATTERN, part, re.IGNORECASE):
            return part.strip()
    return line.strip()


def _degree_and_field(line: str) -> Tuple[str, str]:
    for part in re.split(r'\s*[|,]\s*|\s+[–—-]\s+', line):
        if re.search(DEGREE_PATTERN, part, re.IGNORECASE):
            part = re.sub(YEAR_PATTERN, '', part).strip(' ()')
            # "Bachelor of Science in Physics" -> ("Bachelor of Science", "Physics")
            match = re.match(r'(.+?)\s+in\s+(.+)', part)
            if match:
                return match.group(1).strip(), match.group(2).strip()
            return part, ""
    return line.strip(), ""


def _parse_projects(lines: List[str]) -> List[Project]:
    projects: List[Project] = []

    for line in lines:
        tech = re.match(r'^(?:technologies|tech stack|built with|stack)\s*:\s*(.+)$', _strip_bullet(line), re.IGNORECASE)
        if tech and projects:
            projects[-1].technologies = [t.strip() for t in re.split(r'[,|;]', tech.group(1)) if t.strip()]
        elif _is_bullet(line) and projects:
            text = _strip_bullet(line)
            projects[-1].description = f"{projects[-1].description} {text}".strip()
        else:
            title, _, description = line.partition(' - ')
            projects.append(Project(title=title.strip(), description=description.strip()))

    return projects


def validate_resume(resume: ResumeData) -> List[str]:
    """Missing fields that block tailoring; empty when the resume is usable."""
    errors = []

    if not resume.contact.name.strip():
        errors.append("Missing name")
    if not resume.contact.email.strip():
        errors.append("Missing email")
    if not resume.contact.phone.strip():
        errors.append("Missing phone")
    if not resume.skills:
        errors.append("No skills listed")
    if not resume.experience:
        errors.append("No experience listed")
    if not resume.education:
        errors.append("No education listed")

    return errors


def ensure_valid(resume: ResumeData) -> None:
    """Raise ValidationError when the resume cannot be tailored."""
    errors = validate_resume(resume)
    if errors:
        raise ValidationError(errors)
