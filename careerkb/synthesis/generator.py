"""Tailored resume generation: requirements, retrieval, and assembly."""

import time

from ..core.agents.generation import AssemblyAgent, AssemblyInput, RequirementsAgent, RequirementsInput
from ..core.config.settings import PipelineSettings
from ..core.errors import InvalidInputError, ParseError
from ..core.interfaces import CompanyResearcher, LanguageModel, VectorMemory
from ..core.models.enums import SkillCategory
from ..core.models.generation import GenerateResult, JobRequirements, SelectedItems
from ..core.text import strip_fences, truncate
from ..integrations.company_research import render_company_context
from ..kb.storage.database import Database
from ..kb.storage.knowledge_store import KnowledgeStore
from ..observability.logger import get_logger
from .retrieval import CandidatePool, CandidateRetriever

logger = get_logger(__name__)

RAW_FALLBACK_SUMMARY = "Resume generated (JSON parse failed, returning raw text)"


def render_candidate_data(pool: CandidatePool) -> str:
    """Render the candidate pool as the CANDIDATE DATA block of the assembly prompt."""
    lines = ["=== EXPERIENCES ==="]
    for exp in pool.experiences:
        lines.append(f"• {exp.title} at {exp.company} ({exp.start_date}–{exp.end_date})")
        if exp.location:
            lines.append(f"  Location: {exp.location}")
        if exp.domain:
            lines.append(f"  Domain: {exp.domain}")
        if exp.description:
            lines.append(f"  {exp.description}")
        lines.extend(f"  - {highlight}" for highlight in exp.highlights)

    if pool.projects:
        lines += ["", "=== PROJECTS ==="]
        for proj in pool.projects:
            head = f"• {proj.name}"
            if proj.url:
                head += f" ({proj.url})"
            if proj.is_sub_project:
                head += " [sub-project]"
            lines.append(head)
            if proj.description:
                lines.append(f"  {proj.description}")
            if proj.tech:
                lines.append(f"  Tech: {', '.join(proj.tech)}")
            lines.extend(f"  - {highlight}" for highlight in proj.highlights)

    if pool.achievements:
        lines += ["", "=== KEY ACHIEVEMENTS ==="]
        lines.extend(f"• {achv.text}" for achv in pool.achievements)

    if pool.educations:
        lines += ["", "=== EDUCATION ==="]
        for edu in pool.educations:
            lines.append(f"• {edu.degree}, {edu.school} in {edu.field} ({edu.start_date}–{edu.end_date})")

    if pool.skills:
        lines += ["", "=== ALL SKILLS ==="]
        by_category: dict[str, list[str]] = {}
        for skill in pool.skills:
            label = f"{skill.name} (inferred)" if skill.is_implicit else skill.name
            by_category.setdefault(skill.category or SkillCategory.OTHER.value, []).append(label)
        lines.extend(f"• {category}: {', '.join(names)}" for category, names in by_category.items())

    if pool.certifications:
        lines += ["", "=== CERTIFICATIONS ==="]
        for cert in pool.certifications:
            line = f"• {cert.name}"
            if cert.issuer:
                line += f" ({cert.issuer})"
            if cert.year:
                line += f" [{cert.year}]"
            lines.append(line)

    if pool.domains:
        lines += ["", "=== PROFESSIONAL DOMAINS ==="]
        lines.extend(f"• {domain.name}" for domain in pool.domains)

    if pool.methodologies:
        lines += ["", "=== METHODOLOGIES ==="]
        for method in pool.methodologies:
            lines.append(f"• {method.name}: {method.description}" if method.description else f"• {method.name}")

    return "\n".join(lines) + "\n"


class ResumeGenerator:
    """Generates an ATS-targeted resume for one job description."""

    def __init__(
        self,
        db: Database,
        llm: LanguageModel,
        vectors: VectorMemory,
        researcher: CompanyResearcher | None = None,
        settings: PipelineSettings | None = None,
    ):
        """Initialize the generator.

        Args:
            db: Relational store
            llm: Language model for requirements and assembly
            vectors: Semantic index searched with the job description
            researcher: Optional company research collaborator
            settings: Truncation limits and search thresholds
        """
        self.db = db
        self.researcher = researcher
        self.settings = settings or PipelineSettings()
        self.retriever = CandidateRetriever(db, vectors, self.settings)
        self.requirements_agent = RequirementsAgent(llm)
        self.assembly_agent = AssemblyAgent(llm)

    async def generate(
        self,
        job_description: str,
        company: str | None = None,
        output_format: str = "text",
    ) -> GenerateResult:
        """Generate a tailored resume.

        Args:
            job_description: Target job description
            company: Optional employer name for company context
            output_format: Requested output format (text, markdown, ...)

        Returns:
            GenerateResult with the resume, ATS score, keywords, and selection counts

        Raises:
            InvalidInputError: If the job description is empty
            NotFoundError: If no master resume has been built
            ParseError: If the requirements output violates its schema
        """
        if not job_description or not job_description.strip():
            raise InvalidInputError("job description is empty")
        output_format = (output_format or "text").strip() or "text"

        start_time = time.time()
        with self.db.connect() as conn:
            person_id = KnowledgeStore(conn).require_person_id()

        jd_text = truncate(job_description, self.settings.max_job_description_chars)
        requirements = await self.requirements_agent.execute(RequirementsInput(job_description=jd_text))
        logger.info(
            "job_requirements_extracted",
            role=requirements.role_title,
            seniority=requirements.seniority,
            required=len(requirements.required_skills),
            nice_to_have=len(requirements.nice_to_have),
        )

        pool = await self.retriever.select(person_id, requirements.all_skills, jd_text)
        selected = SelectedItems(
            experiences=len(pool.experiences),
            projects=len(pool.projects),
            achievements=len(pool.achievements),
        )

        company_context = await self._company_context(company)

        try:
            assembled = await self.assembly_agent.execute(
                AssemblyInput(
                    requirements=requirements,
                    candidate_data=render_candidate_data(pool),
                    company_context=company_context,
                    output_format=output_format,
                )
            )
        except ParseError as e:
            logger.warning("assembly_returned_raw_text", raw_snippet=e.raw_snippet)
            return GenerateResult(
                resume=strip_fences(e.raw_output),
                selected_items=selected,
                selected_experience_ids=[exp.id for exp in pool.experiences],
                requirements=requirements,
                format=output_format,
                summary=RAW_FALLBACK_SUMMARY,
            )

        result = GenerateResult(
            resume=assembled.resume,
            ats_score=assembled.ats_score,
            matched_keywords=assembled.matched_keywords,
            added_keywords=assembled.added_keywords,
            missing_keywords=assembled.missing_keywords,
            selected_items=selected,
            selected_experience_ids=[exp.id for exp in pool.experiences],
            requirements=requirements,
            format=output_format,
        )
        result.summary = self._summary(requirements, result)

        logger.info(
            "resume_generated",
            role=requirements.role_title,
            ats_score=result.ats_score,
            experiences=selected.experiences,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return result

    async def _company_context(self, company: str | None) -> str:
        """Best-effort company research; failures are logged and yield no context."""
        if not company or not company.strip() or self.researcher is None:
            return ""
        try:
            research = await self.researcher.research(company.strip())
        except Exception as e:
            logger.warning("company_research_failed", company=company, error=str(e), error_type=type(e).__name__)
            return ""
        return render_company_context(company.strip(), research)

    @staticmethod
    def _summary(requirements: JobRequirements, result: GenerateResult) -> str:
        items = result.selected_items
        return (
            f"Generated ATS resume for {requirements.role_title} ({requirements.seniority}). "
            f"Used {items.experiences} experiences, {items.projects} projects, {items.achievements} achievements. "
            f"ATS score: {result.ats_score}/100. "
            f"Matched {len(result.matched_keywords)}/{len(requirements.required_skills) + len(requirements.nice_to_have)} keywords."
        )
