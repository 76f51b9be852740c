"""
Prompt templates on disk, optionally mirrored into the Opik prompt library.

Templates use Mustache placeholders ({{source_document}}); the same text renders through
LocalPrompt offline or through opik.Prompt when registration is enabled.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

from opik import Prompt, PromptType

from infrastructure.io import ensure_exists, read_text

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def find_placeholders(template: str) -> set[str]:
    return set(_PLACEHOLDER.findall(template))


@dataclass(frozen=True)
class LocalPrompt:
    """Disk-only prompt with the same `name` / `prompt` / `metadata` / `format` surface as opik.Prompt."""

    name: str
    prompt: str
    metadata: dict[str, Any]

    def format(self, **kwargs: Any) -> str:
        rendered = self.prompt
        # longest names first so {{summary}} never eats part of {{summary_title}}
        for k in sorted(kwargs, key=lambda x: len(str(x)), reverse=True):
            v = str(kwargs[k])
            pattern = re.compile(r"\{\{\s*" + re.escape(str(k)) + r"\s*\}\}")
            rendered = pattern.sub(lambda _m, v=v: v, rendered)
        return rendered


PromptObj: TypeAlias = Prompt | LocalPrompt


class PromptManager:
    """
    Loads prompt templates from `prompts_root` and caches them per file version.

    Layout:
        prompts/
        ├─ span-annotation.txt
        └─ <other-task>.txt

    With register_in_opik=True every loaded template is created (or versioned) in the
    Opik prompt library and returned as an opik.Prompt.
    """

    def __init__(self, prompts_root: Path, register_in_opik: bool = False):
        self.prompts_root = prompts_root
        self.register_in_opik = register_in_opik
        self._cache: dict[tuple[str, int, bool], PromptObj] = {}

    def _get_prompt_path(self, name: str, override_path: Path | None = None) -> Path:
        if override_path is not None:
            return override_path
        return self.prompts_root / f"{name}.txt"

    def get_prompt(
        self,
        name: str,
        override_path: Path | None = None,
        required_placeholders: Sequence[str] = (),
    ) -> PromptObj:
        """
        Load a prompt template.

        :param name: Prompt name; resolves to prompts_root/<name>.txt
        :param override_path: Use this file instead of the default path
        :param required_placeholders: Placeholder names the template must contain

        :return:
        PromptObj exposing `name`, `prompt`, `metadata` and `format`

        Raises:
        FileNotFoundError: if the resolved prompt file does not exist
        ValueError: for empty templates, missing placeholders, or a failed Opik registration
        """
        prompt_path = self._get_prompt_path(name, override_path)
        ensure_exists(prompt_path, f"{name} prompt")
        mtime_ns = prompt_path.stat().st_mtime_ns

        cache_key = (str(prompt_path), mtime_ns, self.register_in_opik)
        if cache_key not in self._cache:
            self._cache[cache_key] = self._load(name, prompt_path)
        prompt_obj = self._cache[cache_key]

        missing = [p for p in required_placeholders if p not in prompt_obj.metadata["placeholders"]]
        if missing:
            raise ValueError(f"Prompt {prompt_path} is missing placeholders: {missing}")
        return prompt_obj

    def _load(self, name: str, prompt_path: Path) -> PromptObj:
        prompt_text = read_text(prompt_path)
        if not prompt_text:
            raise ValueError(f"Prompt file is empty: {prompt_path}")

        metadata = {
            "source_path": str(prompt_path),
            "placeholders": sorted(find_placeholders(prompt_text)),
        }

        if self.register_in_opik:
            try:
                prompt_obj: PromptObj = Prompt(
                    name=name,
                    prompt=prompt_text,
                    type=PromptType.MUSTACHE,
                    metadata=metadata,
                )
            except Exception as e:
                raise ValueError(f"Failed to create/register prompt '{name}' in Opik prompt library.") from e
        else:
            prompt_obj = LocalPrompt(name=name, prompt=prompt_text, metadata=metadata)

        logger.info("Loaded prompt %s from %s (placeholders: %s)", name, prompt_path, metadata["placeholders"])
        return prompt_obj
