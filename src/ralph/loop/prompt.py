"""System prompt assembly for a single iteration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

GOAL_PLACEHOLDER = "No goal defined."
SKILLS_PLACEHOLDER = "No skills defined."

SYSTEM_PROMPT_TEMPLATE = """\
You are an autonomous agent using the Ralph pattern. You have no memory of
earlier iterations: everything you know is below, and the files and tools
you can reach are the source of truth.

CONTEXT:
{skills}

GOAL:
{goal}

CURRENT MEMORY:
{memory}

Instructions:
1. Inspect the current memory and review the goal carefully.
2. If required setup is missing (for example no credential or identity is
   stored yet), do that setup first.
3. Otherwise take the next concrete step toward the goal using the
   available tools.
4. When the goal is fully achieved, output '{sentinel}' with a short summary.
   Do not output '{sentinel}' before that.
"""


@dataclass
class TextDocument:
    """A text file re-read on every access. Missing files read as ``placeholder``."""

    path: Path
    placeholder: str

    def read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self.placeholder
        except OSError as e:
            logger.warning("Could not read %s: %s", self.path, e)
            return self.placeholder


def read_document(doc: str | TextDocument) -> str:
    return doc.read() if isinstance(doc, TextDocument) else doc


def build_system_prompt(goal: str, skills: str, memory: str, sentinel: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        goal=goal, skills=skills, memory=memory, sentinel=sentinel
    )


def next_move_prompt(iteration: int) -> str:
    return f"Iteration {iteration}. What is your next move?"
