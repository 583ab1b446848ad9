"""
Prompt Manager Service

Holds the AI-check prompt template for each block type. Defaults ship in
``prompts.json``; admin edits are overrides kept in memory and, when an
overrides file is configured, written to disk and hot-reloaded on change.
"""

import json
import logging
import re
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Optional

from debate_backend.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PROMPTS_FILE = Path(__file__).resolve().parent.parent / "prompts.json"

_TEXT_PLACEHOLDER = re.compile(r"\$(?:\{text\}|text\b)")


class PromptManager:
    """
    Per-block-type prompt templates.

    Features:
    - Load defaults from prompts.json
    - Render templates with ``${text}`` substitution
    - Override and reset templates at runtime
    - Hot-reload the overrides file on mtime change
    """

    def __init__(self, defaults_file: Optional[str] = None, overrides_file: Optional[str] = None):
        self.defaults_file = Path(defaults_file) if defaults_file else DEFAULT_PROMPTS_FILE
        self.overrides_file = Path(overrides_file) if overrides_file else None

        with open(self.defaults_file, "r") as f:
            self._defaults: Dict[str, Any] = json.load(f).get("prompts", {})

        self._overrides: Dict[str, str] = {}
        self._file_mtime: Optional[float] = None
        self.reload()

    def reload(self) -> None:
        """Reload overrides from file (hot-reload support)"""
        if self.overrides_file is None or not self.overrides_file.exists():
            return
        with open(self.overrides_file, "r") as f:
            data = json.load(f)
        self._overrides = {k: v for k, v in data.items() if k in self._defaults and isinstance(v, str)}
        self._file_mtime = self.overrides_file.stat().st_mtime
        logger.info("Loaded %d prompt override(s) from %s", len(self._overrides), self.overrides_file)

    def _check_reload(self) -> None:
        if self.overrides_file is not None and self.overrides_file.exists():
            if self.overrides_file.stat().st_mtime != self._file_mtime:
                self.reload()

    def _require_block_type(self, block_type: str) -> None:
        if block_type not in self._defaults:
            raise NotFoundError(f"Prompt not found: {block_type}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def block_types(self) -> List[str]:
        return list(self._defaults.keys())

    def get_prompt(self, block_type: str) -> str:
        self._check_reload()
        self._require_block_type(block_type)
        if block_type in self._overrides:
            return self._overrides[block_type]
        return self._defaults[block_type]["template"]

    def get_default_prompt(self, block_type: str) -> str:
        self._require_block_type(block_type)
        return self._defaults[block_type]["template"]

    def is_overridden(self, block_type: str) -> bool:
        self._check_reload()
        return block_type in self._overrides

    def list_prompts(self) -> List[Dict[str, Any]]:
        return [
            {
                "block_type": block_type,
                "description": self._defaults[block_type].get("description", ""),
                "template": self.get_prompt(block_type),
                "is_default": not self.is_overridden(block_type),
            }
            for block_type in self.block_types()
        ]

    def render_prompt(self, block_type: str, text: str) -> str:
        """
        Render the template for ``block_type`` with the block text.

        ``safe_substitute`` leaves any other ``$`` sequences in the template
        as written.
        """
        return Template(self.get_prompt(block_type)).safe_substitute(text=text)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_prompt(self, block_type: str, template: str) -> str:
        self._check_reload()
        self._require_block_type(block_type)
        if not isinstance(template, str) or not template.strip():
            raise ValidationError("Prompt is required and must be a string")
        if not _TEXT_PLACEHOLDER.search(template):
            raise ValidationError("Prompt must contain the ${text} placeholder")

        self._overrides[block_type] = template
        self._save_to_file()
        logger.info("Prompt for %s updated (%d chars)", block_type, len(template))
        return template

    def reset_prompt(self, block_type: str) -> str:
        self._check_reload()
        self._require_block_type(block_type)
        self._overrides.pop(block_type, None)
        self._save_to_file()
        return self.get_default_prompt(block_type)

    def reset_all(self) -> None:
        self._overrides = {}
        self._save_to_file()

    def _save_to_file(self) -> None:
        if self.overrides_file is None:
            return
        with open(self.overrides_file, "w") as f:
            json.dump(self._overrides, f, indent=2)
        self._file_mtime = self.overrides_file.stat().st_mtime
