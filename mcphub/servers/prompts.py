"""Prompt templates for in-process servers."""

import logging
import re
from typing import Any, Callable

from mcphub.mcp.models import (
    ROLE_USER,
    Prompt,
    PromptArgument,
    PromptMessage,
    PromptResult,
)

logger = logging.getLogger(__name__)

PromptExecutor = Callable[[dict[str, Any]], PromptResult]

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


def extract_arguments(template: str) -> list[PromptArgument]:
    """Every ``{name}`` placeholder of a template becomes a required argument."""
    seen: dict[str, PromptArgument] = {}
    for match in _PLACEHOLDER.finditer(template):
        name = match.group(1).strip()
        if name and name not in seen:
            seen[name] = PromptArgument(name=name, description=f"Argument: {name}", required=True)
    return list(seen.values())


def render_template(template: str, arguments: dict[str, Any]) -> str:
    """Substitute placeholders; unknown placeholders are left as they are."""

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1).strip()
        if name in arguments:
            return str(arguments[name])
        return match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


class PromptManager:
    """Named prompts together with the executors that render them."""

    def __init__(self) -> None:
        self._prompts: dict[str, Prompt] = {}
        self._executors: dict[str, PromptExecutor] = {}

    def register(self, prompt: Prompt, executor: PromptExecutor) -> "PromptManager":
        if prompt.name in self._prompts:
            logger.warning(f"Prompt '{prompt.name}' already registered, overwriting")
        self._prompts[prompt.name] = prompt
        self._executors[prompt.name] = executor
        logger.debug(f"Registered prompt: {prompt.name}")
        return self

    def register_text_prompt(
        self, name: str, description: str | None, template: str
    ) -> "PromptManager":
        """Register a prompt rendered from a ``{placeholder}`` template as one user message."""
        prompt = Prompt(name=name, description=description, arguments=extract_arguments(template))

        def execute(arguments: dict[str, Any]) -> PromptResult:
            return PromptResult.simple(description, render_template(template, arguments))

        return self.register(prompt, execute)

    def register_fixed(
        self, name: str, description: str | None, text: str, role: str = ROLE_USER
    ) -> "PromptManager":
        """Register a prompt that always renders the same single message."""
        prompt = Prompt(name=name, description=description)

        def execute(arguments: dict[str, Any]) -> PromptResult:
            return PromptResult(
                description=description,
                messages=[PromptMessage(role=role, content=text)],
            )

        return self.register(prompt, execute)

    def unregister(self, name: str) -> "PromptManager":
        self._prompts.pop(name, None)
        self._executors.pop(name, None)
        logger.debug(f"Unregistered prompt: {name}")
        return self

    def list_prompts(self) -> list[Prompt]:
        return list(self._prompts.values())

    def has_prompt(self, name: str) -> bool:
        return name in self._prompts

    def get_prompt(self, name: str, arguments: dict[str, Any] | None = None) -> PromptResult:
        """
        Render a prompt.

        Raises:
            LookupError: no prompt with that name.
            ValueError: a required argument is missing.
        """
        executor = self._executors.get(name)
        if executor is None:
            raise LookupError(f"Prompt not found: {name}")

        arguments = arguments or {}
        missing = [
            arg.name
            for arg in self._prompts[name].arguments
            if arg.required and arg.name not in arguments
        ]
        if missing:
            raise ValueError(f"Missing required arguments for prompt {name}: {', '.join(missing)}")

        return executor(arguments)

    def __len__(self) -> int:
        return len(self._prompts)
