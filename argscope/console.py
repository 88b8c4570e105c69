# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""Global console instance for the ArgScope command line."""
from rich.console import Console
from rich.theme import Theme

argscope_theme = Theme(
    {
        "option": "bold cyan",
        "positional": "bold green",
        "unknown": "bold red",
        "metavar": "yellow",
        "stub": "bold magenta",
        "help": "dim",
    }
)

console = Console(theme=argscope_theme)
