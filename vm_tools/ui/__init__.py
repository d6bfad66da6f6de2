"""Terminal presentation for VM Tools."""

from vm_tools.ui.monitor import MonitorView
from vm_tools.ui.prompt import ConfirmPrompt
from vm_tools.ui.theme import Theme

__all__ = ["ConfirmPrompt", "MonitorView", "Theme"]
