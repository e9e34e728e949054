"""Base agent class for every language-model call careerkb makes."""

import hashlib
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Generic, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import ParseError
from ..interfaces import LanguageModel
from ..models.enums import AgentType
from ..text import strip_fences
from ...observability.logger import get_logger

logger = get_logger(__name__)

TInput = TypeVar("TInput", bound=BaseModel)
TOutput = TypeVar("TOutput", bound=BaseModel)


class BaseAgent(ABC, Generic[TInput, TOutput]):
    """Abstract base class for all agents.

    Implements the template method pattern:
    - Prompt construction from a typed Pydantic input
    - One JSON-only completion through the injected language model
    - Fence stripping and strict Pydantic validation of the output
    - Structured start/complete/failure logging

    There is no retry: a failed completion or a contract violation surfaces
    to the caller, which decides whether it is fatal.
    """

    def __init__(self, llm: LanguageModel):
        """Initialize base agent.

        Args:
            llm: Language model used for completions
        """
        self.llm = llm
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def agent_type(self) -> AgentType:
        """Return the agent type enum."""

    @property
    @abstractmethod
    def output_schema(self) -> Type[TOutput]:
        """Return the Pydantic schema the completion must satisfy."""

    @abstractmethod
    def _build_prompt(self, input_data: TInput) -> str:
        """Build prompt for the language model.

        Args:
            input_data: Input data

        Returns:
            Prompt string
        """

    async def execute(self, input_data: TInput) -> TOutput:
        """Build the prompt, call the model, and validate the answer.

        Args:
            input_data: Input data (Pydantic model)

        Returns:
            Validated output model

        Raises:
            ParseError: If the output does not match ``output_schema``
            Exception: Whatever the language model raised
        """
        start_time = time.time()
        input_hash = self._hash_input(input_data)

        self.logger.info("agent_execution_start", agent=self.agent_type.value, input_hash=input_hash)

        try:
            prompt = self._build_prompt(input_data)
            raw = await self.llm.complete(prompt)
            output = self.parse_output(raw)
        except ParseError as e:
            self.logger.warning(
                "agent_output_rejected",
                agent=self.agent_type.value,
                error=e.detail,
                raw_snippet=e.raw_snippet,
                duration_ms=int((time.time() - start_time) * 1000),
            )
            raise
        except Exception as e:
            self.logger.error(
                "agent_execution_failed",
                agent=self.agent_type.value,
                error=str(e),
                duration_ms=int((time.time() - start_time) * 1000),
                exc_info=True,
            )
            raise

        self.logger.info(
            "agent_execution_complete",
            agent=self.agent_type.value,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return output

    def parse_output(self, raw: str) -> TOutput:
        """Strip code fences and validate; fall back to the outermost JSON object.

        Args:
            raw: Raw model output

        Returns:
            Validated output model

        Raises:
            ParseError: If neither the cleaned text nor its outermost object validates
        """
        cleaned = strip_fences(raw)
        try:
            return self.output_schema.model_validate_json(cleaned)
        except ValidationError as first_error:
            repaired = self._outermost_object(cleaned)
            if repaired is not None:
                try:
                    return self.output_schema.model_validate(repaired)
                except ValidationError:
                    pass
            raise ParseError(
                self.agent_type.value,
                first_error.errors()[0]["msg"] if first_error.errors() else str(first_error),
                raw,
            ) from first_error

    @staticmethod
    def _outermost_object(text: str) -> dict[str, Any] | None:
        """Trim prose around the first '{' and last '}' and parse what is left."""
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            candidate = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            return None
        return candidate if isinstance(candidate, dict) else None

    def _hash_input(self, input_data: TInput) -> str:
        """Short SHA-256 of the input, used to correlate log lines."""
        json_str = json.dumps(input_data.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:16]
