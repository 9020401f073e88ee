"""System prompt rendering."""

from __future__ import annotations

from string import Template
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tether.core.orchestration.models import AgentConfig
    from tether.protocols.registry import CapabilityRegistry


def render_prompt(config: AgentConfig, **variables: Any) -> str:
    """Render ``config.system_prompt`` with ``safe_substitute``.

    ``name`` defaults to the agent name; *variables* override
    ``config.prompt_variables``.
    """
    merged: dict[str, Any] = {"name": config.name, **config.prompt_variables, **variables}
    return Template(config.system_prompt).safe_substitute(merged)


def build_system_prompt(
    config: AgentConfig,
    registry: CapabilityRegistry | None = None,
    **variables: Any,
) -> str:
    """Rendered prompt followed by an "Available tools" section.

    The section is omitted when the registry is empty.
    """
    prompt = render_prompt(config, **variables)
    if registry is not None and len(registry):
        prompt = f"{prompt}\n\n## Available tools\n{registry.summary()}"
    return prompt
