"""Line-based XML writer with tab indentation."""

from typing import List


class XMLWriter:
    """Accumulates lines; blocks indent their content by one tab.

    Examples
    --------
    >>> writer = XMLWriter()
    >>> writer.start_block("<g>")
    >>> writer.add_line("<line/>")
    >>> writer.end_block("</g>")
    >>> writer.result
    '<g>\\n\\t<line/>\\n</g>'
    """

    def __init__(self):
        self.indentation_level = 0
        self.lines: List[str] = []

    @property
    def result(self) -> str:
        return "\n".join(self.lines)

    def start_block(self, line: str) -> None:
        self.add_line(line)
        self.indentation_level += 1

    def end_block(self, line: str) -> None:
        if self.indentation_level == 0:
            raise ValueError(f"Unbalanced block end: {line}")
        self.indentation_level -= 1
        self.add_line(line)

    def add_line(self, line: str) -> None:
        self.lines.append("\t" * self.indentation_level + line)
