"""Theme and styling for terminal output."""

from blessed import Terminal

from vm_tools.config import COLORS
from vm_tools.models import NetworkIssueType, VMState


class Theme:
    """Theme manager for consistent styling."""

    def __init__(self, term: Terminal) -> None:
        self.term = term

    def state_color(self, state: VMState) -> str:
        """Get colored state text."""
        color_name = COLORS.get(state.color_key, "white")
        color_func = getattr(self.term, color_name, self.term.white)
        return str(color_func(state.display_name))

    def issue_color(self, issue: NetworkIssueType) -> str:
        """Auto-fixable issues as warnings, the rest as errors."""
        if issue.auto_fixable:
            return self.warning(str(issue))
        return self.error(str(issue))

    def colored(self, text: str, color: str) -> str:
        """Apply color to text."""
        color_func = getattr(self.term, color, self.term.white)
        return str(color_func(text))

    def header(self, text: str) -> str:
        return str(self.term.bold(self.colored(text, COLORS["header"])))

    def error(self, text: str) -> str:
        return str(self.term.bold(self.colored(text, COLORS["error"])))

    def success(self, text: str) -> str:
        return str(self.term.bold(self.colored(text, COLORS["success"])))

    def warning(self, text: str) -> str:
        return str(self.term.bold(self.colored(text, COLORS["warning"])))

    def info(self, text: str) -> str:
        return self.colored(text, COLORS["info"])

    def dim(self, text: str) -> str:
        """Style dimmed text."""
        try:
            return str(self.term.dim(text))
        except (TypeError, AttributeError):
            pass
        # Fallback to darker color if dim not supported
        try:
            return str(self.term.bright_black(text))
        except (TypeError, AttributeError):
            return text

    def bold(self, text: str) -> str:
        return str(self.term.bold(text))

    def pad(self, text: str, width: int) -> str:
        """Left-justify styled text to ``width`` visible columns."""
        return str(self.term.ljust(text, width))
