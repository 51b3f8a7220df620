"""Rich Console factory and theme for buckal output.

Consoles render into a StringIO buffer so renderers keep a plain
``-> str`` contract. Rich drops color codes when the output is not a
terminal (tests, pipes).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

BUCKAL_THEME = Theme(
    {
        "buckal.ok": "bold green",
        "buckal.error": "bold red",
        "buckal.warning": "bold yellow",
        "buckal.op": "bold cyan",
        "buckal.key": "dim",
        "buckal.path": "dim",
        "buckal.label": "bold blue",
        "buckal.verb.adding": "bold green",
        "buckal.verb.flushing": "bold cyan",
        "buckal.verb.removing": "bold red",
        "buckal.verb.generating": "bold magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=BUCKAL_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_verb(verb: str) -> str:
    """Rich style for a progress verb (``Adding``, ``Removing``, ...)."""
    style = f"buckal.verb.{verb.lower()}"
    return style if style in BUCKAL_THEME.styles else "bold"
