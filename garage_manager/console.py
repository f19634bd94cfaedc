"""
Terminal output helpers: colored log lines, boxes and prompts.
"""

import logging
import sys
from typing import Callable, Iterable, Optional


class Colors:
    """ANSI color codes for terminal output"""

    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[0;34m"
    CYAN = "\033[0;36m"
    PURPLE = "\033[0;35m"
    NC = "\033[0m"


class ColorFormatter(logging.Formatter):
    """Renders records as '[INFO] message' with a colored level tag."""

    LEVELS = {
        logging.DEBUG: ("DEBUG", Colors.BLUE),
        logging.INFO: ("INFO", Colors.GREEN),
        logging.WARNING: ("WARN", Colors.YELLOW),
        logging.ERROR: ("ERROR", Colors.RED),
        logging.CRITICAL: ("ERROR", Colors.RED),
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        label, color = self.LEVELS.get(record.levelno, (record.levelname, ""))
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if self.use_color and color:
            return f"{color}[{label}]{Colors.NC} {message}"
        return f"[{label}] {message}"


def setup_logging(verbose: bool = False, stream=None) -> None:
    """Route the package's log records to the terminal with colored tags."""
    stream = stream or sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColorFormatter(use_color=stream.isatty()))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    # botocore and urllib3 are chatty at DEBUG
    for noisy in ("botocore", "boto3", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def colored(text: str, color: str) -> str:
    return f"{color}{text}{Colors.NC}"


def box(lines: Iterable[str], color: str, width: int = 46) -> str:
    """Draw a double-line box around centered lines."""
    inner = width - 2
    rows = [colored("╔" + "═" * inner + "╗", color)]
    for line in lines:
        rows.append(colored("║" + line.center(inner) + "║", color))
    rows.append(colored("╚" + "═" * inner + "╝", color))
    return "\n".join(rows)


class Prompter:
    """Reads answers from the user; input_func is swappable for tests."""

    def __init__(self, input_func: Callable[[str], str] = input):
        self.input_func = input_func

    def ask(self, question: str) -> str:
        print(colored(question, Colors.YELLOW))
        return self.input_func("").strip()

    def confirm(self, question: str) -> bool:
        """Ask a y/N question; anything but y/Y means no."""
        return self.ask(f"{question} (y/N): ").lower().startswith("y")

    def choose(self, title: str, options: Iterable[str], prompt: Optional[str] = None) -> str:
        print(colored(title, Colors.CYAN))
        options = list(options)
        for index, option in enumerate(options, start=1):
            print(f"{index}. {option}")
        print("")
        return self.ask(prompt or f"Enter choice (1-{len(options)}): ")

    def pause(self) -> None:
        print("")
        print(colored("Press Enter to continue...", Colors.YELLOW))
        self.input_func("")
