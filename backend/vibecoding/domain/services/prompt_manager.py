"""
Prompt Template System
Assembles the bounded conversation prompt sent to the completion gateway
"""
from typing import Dict, List, Sequence
from pydantic import BaseModel, Field
from jinja2 import Environment, BaseLoader
import logging

from vibecoding.domain.models.conversation import Turn

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_WINDOW = 5


class PromptTemplate(BaseModel):
    """Single prompt template"""
    name: str = Field(..., description="Template name")
    template: str = Field(..., description="Jinja2 template string")
    variables: List[str] = Field(default_factory=list, description="Required variables")

    def render(self, **kwargs) -> str:
        """Render template with provided variables"""
        missing = [v for v in self.variables if v not in kwargs]
        if missing:
            raise ValueError(f"Missing template variables for '{self.name}': {missing}")
        env = Environment(loader=BaseLoader())
        template = env.from_string(self.template)
        return template.render(**kwargs)


class PromptManager:
    """
    Builds prompts from the turn log and a new utterance.

    Only the last ``history_window`` turns are included; truncation is by
    turn count, not tokens.
    """

    def __init__(self, history_window: int = DEFAULT_HISTORY_WINDOW):
        if history_window < 1:
            raise ValueError(f"history_window must be >= 1, got {history_window}")
        self.history_window = history_window
        self.templates: Dict[str, PromptTemplate] = {}
        self._load_default_templates()

    def _load_default_templates(self):
        """Load default prompt templates"""
        self.templates["conversation"] = PromptTemplate(
            name="conversation",
            template=(
                "Previous conversation:\n"
                "{{ history }}\n"
                "\n"
                "User: {{ utterance }}\n"
                "\n"
                "Assistant:"
            ),
            variables=["history", "utterance"]
        )

    def add_template(self, template: PromptTemplate) -> None:
        """Register or replace a template"""
        self.templates[template.name] = template

    def render_history(self, turns: Sequence[Turn]) -> str:
        """Render turns one per line as '<Speaker label>: <text>'"""
        return "\n".join(turn.render() for turn in turns)

    def build_prompt(self, history: Sequence[Turn], utterance: str) -> str:
        """
        Assemble the prompt for a new utterance.

        Args:
            history: Turns recorded before the utterance, chronological
            utterance: The new user utterance

        Returns:
            The utterance verbatim when history is empty, otherwise the
            windowed conversation prompt
        """
        if not history:
            return utterance

        window = list(history)[-self.history_window:]
        prompt = self.templates["conversation"].render(
            history=self.render_history(window),
            utterance=utterance
        )
        logger.debug(
            f"Built prompt with {len(window)} of {len(history)} prior turns",
            extra={"window": len(window), "history": len(history)}
        )
        return prompt
