"""
Markdown-subset renderer for message content.

Supports ``**bold**`` and ```code``` spans and pipe tables. ``render`` builds a
tree of typed nodes; ``to_html`` walks the tree and escapes every piece of
text, so stored content is never injected as markup. Malformed input degrades
to best-effort output and never raises.
"""

import html
import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

# Bold and code are matched in one left-to-right scan; whichever opens first
# wins and its content is taken literally.
INLINE_PATTERN = re.compile(r'\*\*(.*?)\*\*|`(.*?)`')
SEPARATOR_CELL = re.compile(r'\s*:?-+:?\s*')


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Bold:
    text: str


@dataclass(frozen=True)
class Code:
    text: str


Inline = Union[Text, Bold, Code]
Cell = Tuple[Inline, ...]


@dataclass(frozen=True)
class Paragraph:
    inlines: Tuple[Inline, ...]


@dataclass(frozen=True)
class Spacer:
    pass


@dataclass(frozen=True)
class Table:
    header: Tuple[Cell, ...]
    rows: Tuple[Tuple[Cell, ...], ...]


Block = Union[Paragraph, Spacer, Table]


def parse_inlines(text: str) -> Tuple[Inline, ...]:
    """Split a line into text, bold and code spans."""
    nodes: List[Inline] = []
    position = 0
    for match in INLINE_PATTERN.finditer(text):
        if match.start() > position:
            nodes.append(Text(text[position:match.start()]))
        if match.group(1) is not None:
            nodes.append(Bold(match.group(1)))
        else:
            nodes.append(Code(match.group(2)))
        position = match.end()
    if position < len(text):
        nodes.append(Text(text[position:]))
    return tuple(nodes)


def is_table_line(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith('|') and '|' in stripped[1:]


def is_separator_row(line: str) -> bool:
    """True when every cell between the pipes is a run of dashes with optional alignment colons."""
    row = line.strip()
    if row.startswith('|'):
        row = row[1:]
    if row.endswith('|'):
        row = row[:-1]
    return all(SEPARATOR_CELL.fullmatch(cell) for cell in row.split('|'))


def split_cells(row: str) -> Tuple[Cell, ...]:
    # Empty cells are dropped, which also removes those produced by the enclosing pipes
    return tuple(parse_inlines(cell.strip()) for cell in row.split('|') if cell.strip())


def build_table(lines: Sequence[str]):
    """Table from a run of pipe lines, or None when only separator rows remain."""
    rows = [line for line in lines if not is_separator_row(line)]
    if not rows:
        return None
    return Table(header=split_cells(rows[0]), rows=tuple(split_cells(row) for row in rows[1:]))


def render(text: str) -> List[Block]:
    """Convert message text into display blocks."""
    blocks: List[Block] = []
    table_lines: List[str] = []

    def flush_table():
        if table_lines:
            table = build_table(table_lines)
            if table is not None:
                blocks.append(table)
            table_lines.clear()

    for line in (text or '').split('\n'):
        if is_table_line(line):
            table_lines.append(line.strip())
            continue

        flush_table()
        if not line.strip():
            blocks.append(Spacer())
        else:
            blocks.append(Paragraph(parse_inlines(line)))

    flush_table()
    return blocks


def inlines_to_html(inlines: Sequence[Inline]) -> str:
    parts = []
    for node in inlines:
        if isinstance(node, Bold):
            parts.append(f'<strong>{html.escape(node.text)}</strong>')
        elif isinstance(node, Code):
            parts.append(f'<code>{html.escape(node.text)}</code>')
        else:
            parts.append(html.escape(node.text))
    return ''.join(parts)


def to_html(blocks: Sequence[Block]) -> str:
    """Walk rendered blocks into escaped HTML."""
    out = []
    for block in blocks:
        if isinstance(block, Paragraph):
            out.append(f'<p>{inlines_to_html(block.inlines)}</p>')
        elif isinstance(block, Spacer):
            out.append('<div class="spacer"></div>')
        elif isinstance(block, Table):
            header = ''.join(f'<th>{inlines_to_html(cell)}</th>' for cell in block.header)
            body = ''.join('<tr>' + ''.join(f'<td>{inlines_to_html(cell)}</td>' for cell in row) + '</tr>'
                           for row in block.rows)
            out.append(f'<table><thead><tr>{header}</tr></thead><tbody>{body}</tbody></table>')
    return '\n'.join(out)


def render_html(text: str) -> str:
    return to_html(render(text))
