from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template

from scriptsrc.model import ScriptSrc

logger = logging.getLogger(__name__)


class TemplateService:
    """
    Renders the generated policy through a user supplied Jinja2 template, e.g.

        Content-Security-Policy: script-src {{ script_src }};

    `script_src` renders as the formatted directive value; its fields
    (`self_`, `hashes`, `hosts`, `others`) are available for custom layouts.
    """

    def __init__(self) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def from_string(self, source: str) -> Template:
        return self.env.from_string(source)

    def from_file(self, path: str) -> Template:
        """Loads a template file; includes and extends resolve relative to its directory."""
        template_path = Path(path)
        env = self.env.overlay(loader=FileSystemLoader(str(template_path.parent)))
        return env.get_template(template_path.name)

    @staticmethod
    def context(script_src: ScriptSrc) -> Dict[str, Any]:
        return {
            "script_src": script_src,
            "self_": script_src.self_,
            "hashes": script_src.hashes,
            "hosts": script_src.hosts,
            "others": script_src.others,
        }

    def render(self, template: Template, script_src: ScriptSrc) -> str:
        logger.debug("Rendering template %s", template.name or "<string>")
        return template.render(self.context(script_src))
