"""Enumeration types for careerkb models."""

from enum import Enum


class AgentType(str, Enum):
    """Language-model agent identifiers."""

    EXTRACTION = "extraction"
    BUILD_ENRICHMENT = "build_enrichment"
    REQUIREMENTS = "requirements"
    ASSEMBLY = "assembly"
    ENRICH_QUESTIONS = "enrich_questions"
    ENRICH_DIRECTIVES = "enrich_directives"
    COMPANY_RESEARCH = "company_research"


class SkillCategory(str, Enum):
    """Skill category tags."""

    PROGRAMMING_LANGUAGE = "programming_language"
    FRAMEWORK = "framework"
    DATABASE = "database"
    CLOUD = "cloud"
    DEVOPS = "devops"
    TOOL = "tool"
    METHODOLOGY = "methodology"
    SOFT_SKILL = "soft_skill"
    OTHER = "other"


class SkillLevel(str, Enum):
    """Skill proficiency tags."""

    EXPERT = "expert"
    ADVANCED = "advanced"
    INTERMEDIATE = "intermediate"
    BEGINNER = "beginner"


class SkillSource(str, Enum):
    """Where a skill came from."""

    RESUME = "resume"
    INFERRED = "inferred"
    ENRICHMENT = "enrichment"


class NodeKind(str, Enum):
    """Graph node kinds, one per entity table that joins the graph."""

    EXPERIENCE = "Exp"
    SKILL = "Skill"
    PROJECT = "Proj"
    ACHIEVEMENT = "Achv"
    DOMAIN = "Domain"
    METHODOLOGY = "Method"


class EdgeType(str, Enum):
    """Typed, directed relationships in the graph overlay."""

    USED_SKILL = "USED_SKILL"  # Exp|Proj -> Skill
    IN_DOMAIN = "IN_DOMAIN"  # Exp -> Domain
    PART_OF = "PART_OF"  # Proj -> Exp
    IMPLIES_SKILL = "IMPLIES_SKILL"  # Skill -> Skill
    EVOLVED_TO = "EVOLVED_TO"  # Exp -> Exp
    PRODUCED = "PRODUCED"  # Exp|Proj -> Achv
    USED_METHOD = "USED_METHOD"  # Exp -> Method
    DERIVED_SKILL = "DERIVED_SKILL"  # Achv -> Skill


class QuestionCategory(str, Enum):
    """Enrichment dialogue question categories."""

    MISSING_METRIC = "missing_metric"
    HIDDEN_SKILL = "hidden_skill"
    ROLE_DETAIL = "role_detail"
    PROJECT_DETAIL = "project_detail"


class DirectiveType(str, Enum):
    """Update directives the dialogue can apply."""

    ADD_SKILL = "add_skill"
    UPDATE_ACHIEVEMENT = "update_achievement"
    ADD_PROJECT = "add_project"
    ADD_METHODOLOGY = "add_methodology"
    ADD_DOMAIN = "add_domain"


class MemoryType(str, Enum):
    """Vector entry types stored in the semantic index."""

    EXPERIENCE = "experience"
    PROJECT = "project"
    ACHIEVEMENT = "achievement"
    NOTE = "note"


class ProfileSection(str, Enum):
    """Sections the profile reader can project."""

    EXPERIENCES = "experiences"
    SKILLS = "skills"
    PROJECTS = "projects"
    ACHIEVEMENTS = "achievements"
    EDUCATIONS = "educations"
    CERTIFICATIONS = "certifications"
    DOMAINS = "domains"
    METHODOLOGIES = "methodologies"
