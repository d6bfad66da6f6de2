"""Interactive confirmation."""

from blessed import Terminal

from vm_tools.ui.theme import Theme


class ConfirmPrompt:
    """Yes/No question on the terminal."""

    def __init__(self, term: Terminal, theme: Theme) -> None:
        self.term = term
        self.theme = theme

    def ask(self, message: str) -> bool:
        """Return True if the user answers yes. Escape or no declines."""
        print(f"{message} {self.theme.info('[y/N]')} ", end="", flush=True)

        if not self.term.is_a_tty:
            try:
                answer = input()
            except EOFError:
                answer = ""
            return answer.strip().lower() in ("y", "yes")

        with self.term.cbreak():
            while True:
                key = self.term.inkey()
                if key.lower() == "y":
                    print("y")
                    return True
                elif key.lower() == "n" or key.name in ("KEY_ESCAPE", "KEY_ENTER"):
                    print("n")
                    return False

    def confirm_delete(self, name: str) -> bool:
        return self.ask(
            f"Delete VM {self.theme.bold(name)} and its disk images? This cannot be undone."
        )
