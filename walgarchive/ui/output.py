"""
Colour-coded terminal output for the command line.
"""

import sys
from typing import Optional, TextIO


TEXT_COLOR_MAPPING = {
    "green": "32;1",
    "red": "31;1",
}


def get_colored_text(text: str, color: str) -> str:
    """
    Get colored text.

    Raises:
        ValueError: If the specified color is not supported
    """
    if color not in TEXT_COLOR_MAPPING:
        raise ValueError(
            f"Unsupported color: {color}. Available colors: {', '.join(TEXT_COLOR_MAPPING.keys())}"
        )

    color_str = TEXT_COLOR_MAPPING[color]
    return f"\u001b[{color_str}m{text}\u001b[0m"


class UIManager:
    """Prints status lines, coloured only when writing to a terminal."""

    def __init__(self, file: Optional[TextIO] = None, color: Optional[bool] = None):
        self.file = file
        self.color = color

    def _use_color(self, stream: TextIO) -> bool:
        if self.color is not None:
            return self.color
        return hasattr(stream, "isatty") and stream.isatty()

    def success(self, message: str) -> None:
        self._print_colored(message, "green")

    def error(self, message: str) -> None:
        self._print_colored(message, "red", file=self.file or sys.stderr)

    def _print_colored(
        self,
        text: str,
        color: str,
        end: str = "\n",
        file: Optional[TextIO] = None,
    ) -> None:
        stream = file or self.file or sys.stdout
        if self._use_color(stream):
            try:
                text = get_colored_text(text, color)
            except ValueError:
                # Fall back to plain text if color is invalid
                pass
        print(text, end=end, file=stream)
        stream.flush()
