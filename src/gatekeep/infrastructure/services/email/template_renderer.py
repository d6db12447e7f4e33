"""Jinja2 template renderer for email templates.

Provides safe template rendering with HTML escaping and error handling.
"""

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from gatekeep.core.logging import get_logger

logger = get_logger(__name__)


class TemplateRenderer:
    """Jinja2 template renderer with security features.

    Uses sandboxed environment to prevent code execution in templates.
    Missing variables raise instead of rendering as empty strings.
    """

    def __init__(self, autoescape: bool = True) -> None:
        self.env = SandboxedEnvironment(
            autoescape=autoescape,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )

    def render(self, template_string: str, variables: dict[str, object]) -> str:
        """Render a template string with variables.

        Args:
            template_string: Jinja2 template string.
            variables: Dictionary of variables to substitute.

        Returns:
            Rendered template string.

        Raises:
            TemplateError: If the template is invalid or a variable is missing.
        """
        try:
            return self.env.from_string(template_string).render(**variables)
        except TemplateError as e:
            logger.error("Template rendering failed", error=str(e))
            raise
