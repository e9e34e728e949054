"""careerkb data models for stored knowledge, LM contracts, and operation results."""

from .base import CareerKBModel, LLMOutputModel, utc_now
from .dialogue import (
    AnswerPair,
    Directive,
    DirectiveSet,
    EnrichAnswerResult,
    EnrichQuestion,
    EnrichStartResult,
    QuestionSet,
)
from .enums import (
    AgentType,
    DirectiveType,
    EdgeType,
    MemoryType,
    NodeKind,
    ProfileSection,
    QuestionCategory,
    SkillCategory,
    SkillLevel,
    SkillSource,
)
from .extraction import (
    EnrichmentResult,
    EnrichmentSubProject,
    ImplicitSkill,
    ParsedAchievement,
    ParsedCertification,
    ParsedEducation,
    ParsedExperience,
    ParsedMethodology,
    ParsedPerson,
    ParsedProject,
    ParsedResume,
    ParsedSkill,
    ParsedSubProject,
    SkillAdjacency,
    TrajectoryPair,
)
from .generation import (
    AssembledResume,
    CompanyResearch,
    GenerateResult,
    JobRequirements,
    SelectedItems,
)
from .knowledge import (
    AchievementRecord,
    CertificationRecord,
    DomainRecord,
    EducationRecord,
    ExperienceRecord,
    GraphEdge,
    GraphNode,
    KnowledgeSnapshot,
    MemoryHit,
    MethodologyRecord,
    PersonRecord,
    ProjectRecord,
    SkillRecord,
    TrajectoryStep,
)
from .results import (
    BuildResult,
    MemorySearchItem,
    MemorySearchResult,
    MemoryWriteResult,
    ProfileSnapshot,
    ProfileStats,
)

__all__ = [
    "AchievementRecord",
    "AgentType",
    "AnswerPair",
    "AssembledResume",
    "BuildResult",
    "CareerKBModel",
    "CertificationRecord",
    "CompanyResearch",
    "Directive",
    "DirectiveSet",
    "DirectiveType",
    "DomainRecord",
    "EdgeType",
    "EducationRecord",
    "EnrichAnswerResult",
    "EnrichQuestion",
    "EnrichStartResult",
    "EnrichmentResult",
    "EnrichmentSubProject",
    "ExperienceRecord",
    "GenerateResult",
    "GraphEdge",
    "GraphNode",
    "ImplicitSkill",
    "JobRequirements",
    "KnowledgeSnapshot",
    "LLMOutputModel",
    "MemoryHit",
    "MemorySearchItem",
    "MemorySearchResult",
    "MemoryType",
    "MemoryWriteResult",
    "MethodologyRecord",
    "NodeKind",
    "ParsedAchievement",
    "ParsedCertification",
    "ParsedEducation",
    "ParsedExperience",
    "ParsedMethodology",
    "ParsedPerson",
    "ParsedProject",
    "ParsedResume",
    "ParsedSkill",
    "ParsedSubProject",
    "PersonRecord",
    "ProfileSection",
    "ProfileSnapshot",
    "ProfileStats",
    "ProjectRecord",
    "QuestionCategory",
    "QuestionSet",
    "SelectedItems",
    "SkillAdjacency",
    "SkillCategory",
    "SkillLevel",
    "SkillRecord",
    "SkillSource",
    "TrajectoryPair",
    "TrajectoryStep",
    "utc_now",
]
