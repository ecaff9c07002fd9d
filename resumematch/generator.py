"""
DOCX resume generator.
Lays out a ResumeData as an ATS-friendly Word document.
"""

import re
from dataclasses import dataclass
from datetime import date
from io import BytesIO
from typing import List, Optional

from docx import Document
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, Inches

from .models import ResumeData


@dataclass
class DocxStyle:
    """Font sizes and spacing for the generated document."""
    font_name: str = "Calibri"
    name_size: Pt = Pt(14)
    contact_size: Pt = Pt(10)
    heading_size: Pt = Pt(12)
    body_size: Pt = Pt(11)
    detail_size: Pt = Pt(10)
    section_spacing: Pt = Pt(20)
    item_spacing: Pt = Pt(5)
    bullet_indent: Inches = Inches(0.5)


class ResumeDocxGenerator:
    """Generate a Word document from a resume."""

    def __init__(self, resume: ResumeData, style: Optional[DocxStyle] = None):
        self.resume = resume
        self.style = style or DocxStyle()
        self.document = Document()

    def generate(self, title: str = "") -> bytes:
        """Build the document and return its bytes."""
        normal = self.document.styles["Normal"]
        normal.font.name = self.style.font_name
        normal.font.size = self.style.body_size
        if title:
            self.document.core_properties.title = title
        self.document.core_properties.author = self.resume.contact.name

        self._add_header()
        self._add_summary()
        self._add_skills()
        self._add_experience()
        self._add_education()
        self._add_projects()

        buffer = BytesIO()
        self.document.save(buffer)
        return buffer.getvalue()

    def _paragraph(self, text: str, size: Pt, bold: bool = False, italic: bool = False,
                   space_after: Pt = Pt(0)):
        paragraph = self.document.add_paragraph()
        run = paragraph.add_run(text)
        run.bold = bold
        run.italic = italic
        run.font.size = size
        paragraph.paragraph_format.space_after = space_after
        return paragraph

    def _heading(self, text: str) -> None:
        """Bold section title with a rule underneath."""
        paragraph = self._paragraph(text, self.style.heading_size, bold=True,
                                    space_after=Pt(10))
        p_pr = paragraph._p.get_or_add_pPr()
        border = OxmlElement("w:pBdr")
        bottom = OxmlElement("w:bottom")
        bottom.set(qn("w:val"), "single")
        bottom.set(qn("w:sz"), "6")
        bottom.set(qn("w:space"), "1")
        bottom.set(qn("w:color"), "000000")
        border.append(bottom)
        p_pr.append(border)

    def _add_header(self) -> None:
        contact = self.resume.contact
        self._paragraph(contact.name, self.style.name_size, bold=True, space_after=Pt(10))

        details: List[str] = [d for d in (contact.email, contact.phone, contact.location) if d]
        if contact.linkedin:
            details.append(f"LinkedIn: {contact.linkedin}")
        if contact.github:
            details.append(f"GitHub: {contact.github}")
        if contact.website:
            details.append(contact.website)
        self._paragraph(" • ".join(details), self.style.contact_size,
                        space_after=self.style.section_spacing)

    def _add_summary(self) -> None:
        summary = (self.resume.summary or "").strip()
        if not summary:
            return
        self._heading("PROFESSIONAL SUMMARY")
        self._paragraph(summary, self.style.body_size, space_after=self.style.section_spacing)

    def _add_skills(self) -> None:
        if not self.resume.skills:
            return
        self._heading("SKILLS")
        self._paragraph(" • ".join(self.resume.skills), self.style.body_size,
                        space_after=self.style.section_spacing)

    def _add_experience(self) -> None:
        if not self.resume.experience:
            return
        self._heading("PROFESSIONAL EXPERIENCE")

        for exp in self.resume.experience:
            self._paragraph(exp.title, self.style.body_size, bold=True)
            self._paragraph(f"{exp.company} | {exp.date_range}", self.style.detail_size,
                            italic=True, space_after=Pt(10))
            for bullet in exp.description:
                paragraph = self.document.add_paragraph(bullet, style="List Bullet")
                paragraph.paragraph_format.left_indent = self.style.bullet_indent
                paragraph.paragraph_format.space_after = self.style.item_spacing
            self.document.add_paragraph().paragraph_format.space_after = Pt(10)

    def _add_education(self) -> None:
        if not self.resume.education:
            return
        self._heading("EDUCATION")

        for edu in self.resume.education:
            degree = f"{edu.degree} in {edu.field}" if edu.field else edu.degree
            self._paragraph(degree, self.style.body_size, bold=True)
            details = f"{edu.institution} | Graduated: {edu.graduation_date}"
            if edu.gpa:
                details += f" | GPA: {edu.gpa}"
            self._paragraph(details, self.style.detail_size, italic=True,
                            space_after=self.style.section_spacing)

    def _add_projects(self) -> None:
        if not self.resume.projects:
            return
        self._heading("PROJECTS")

        for project in self.resume.projects:
            self._paragraph(project.title, self.style.body_size, bold=True)
            self._paragraph(project.description, self.style.body_size, space_after=Pt(10))


def resume_filename(company: str, job_title: str, today: Optional[date] = None) -> str:
    """Download name: Resume_<company>_<title>_<YYYY-MM-DD>.docx"""
    today = today or date.today()

    def clean(value: str) -> str:
        return re.sub(r'[^\w.-]+', '_', value.strip()).strip('_') or "Unknown"

    return f"Resume_{clean(company)}_{clean(job_title)}_{today.isoformat()}.docx"


def generate_resume_docx(resume: ResumeData, company: str, job_title: str) -> bytes:
    """Convenience function to render a resume tailored for a job as DOCX bytes."""
    generator = ResumeDocxGenerator(resume)
    return generator.generate(title=f"Resume - {job_title} at {company}")
