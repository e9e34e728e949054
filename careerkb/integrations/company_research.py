"""Language-model backed company research collaborator."""

from ..core.agents.research import CompanyResearchAgent, CompanyResearchInput
from ..core.interfaces import LanguageModel
from ..core.models.generation import CompanyResearch
from ..observability.logger import get_logger

logger = get_logger(__name__)


class LLMCompanyResearcher:
    """Answers ``research(name)`` from the language model's own knowledge.

    Results are cached per company name for the lifetime of the instance,
    since one session typically generates several resumes for one employer.
    """

    def __init__(self, llm: LanguageModel):
        self.agent = CompanyResearchAgent(llm)
        self._cache: dict[str, CompanyResearch] = {}

    async def research(self, company_name: str) -> CompanyResearch:
        key = company_name.strip().lower()
        if key in self._cache:
            logger.debug("company_research_cache_hit", company=company_name)
            return self._cache[key]

        result = await self.agent.execute(CompanyResearchInput(company_name=company_name))
        if not result.name:
            result.name = company_name
        self._cache[key] = result
        return result


def render_company_context(company_name: str, research: CompanyResearch) -> str:
    """Render the parts of a research result the resume assembler uses.

    Returns:
        A COMPANY CONTEXT block, or an empty string when nothing useful was found
    """
    parts: list[str] = []
    if research.tech_stack:
        parts.append("Tech stack: " + ", ".join(research.tech_stack))
    if research.culture_notes:
        parts.append("Culture: " + research.culture_notes)
    if research.industry:
        parts.append("Industry: " + research.industry)
    if not parts:
        return ""
    return f"COMPANY CONTEXT ({company_name}):\n" + "\n".join(parts)
