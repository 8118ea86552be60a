"""Two-column terminal report: logo on the left, facts on the right."""

from io import StringIO
from typing import List, Optional

from rich.console import Console
from rich.text import Text

from sysfetch.config.models import FetchConfig
from sysfetch.facts.models import Fact, FactStatus, Snapshot

from .logos import ArtBlock
from .theme import Theme

BAR_FILLED = "█"
BAR_EMPTY = "░"
DEGRADED_MARKER = "(degraded)"


def filled_cells(ratio: float, width: int) -> int:
    return min(width, max(0, round(ratio * width)))


def format_bar(ratio: float, width: int) -> str:
    """``[████░░░░] 27%`` with ``round(ratio * width)`` filled cells."""
    filled = filled_cells(ratio, width)
    return f"[{BAR_FILLED * filled}{BAR_EMPTY * (width - filled)}] {round(ratio * 100)}%"


def fact_line(fact: Fact, theme: Theme, config: FetchConfig) -> Text:
    """One styled right-column line for a visible fact."""
    line = Text(no_wrap=True, end="")
    line.append(fact.label, style=theme.label)
    line.append(config.delimiter)
    line.append(fact.value, style=theme.value)

    if fact.ratio is not None:
        filled = filled_cells(fact.ratio, config.bar_width)
        if fact.value:
            line.append(" ")
        line.append("[")
        line.append(BAR_FILLED * filled, style=theme.bar_filled)
        line.append(BAR_EMPTY * (config.bar_width - filled), style=theme.bar_empty)
        line.append("] ")
        line.append(f"{round(fact.ratio * 100)}%", style=theme.value)

    if fact.status is FactStatus.DEGRADED:
        line.append(" ")
        line.append(DEGRADED_MARKER, style=theme.degraded)
    return line


def _offset(art_rows: int, fact_rows: int, valign: str) -> int:
    """Row where the fact column starts, relative to the art."""
    spare = art_rows - fact_rows
    if spare <= 0 or valign == "top":
        return 0
    if valign == "center":
        return spare // 2
    return spare


def layout(
    snapshot: Snapshot,
    art: ArtBlock,
    theme: Theme,
    config: Optional[FetchConfig] = None,
    width: Optional[int] = None,
) -> List[Text]:
    """Build the report rows as rich ``Text`` objects.

    There are exactly ``max(art.height, visible facts)`` rows. Each row is
    cropped to ``width`` terminal cells when a width is known.
    """
    config = config or FetchConfig()
    width = width if width is not None else config.width
    facts = [fact_line(f, theme, config) for f in snapshot.visible_facts]
    rows = max(art.height, len(facts))
    start = _offset(art.height, len(facts), config.valign)
    column = art.width + config.gutter if art.width else 0

    lines: List[Text] = []
    for i in range(rows):
        row = Text(no_wrap=True, end="")
        art_line = art.lines[i] if i < art.height else ""
        j = i - start
        if 0 <= j < len(facts):
            row.append(art_line, style=theme.accent)
            row.pad_right(column - row.cell_len)
            row.append_text(facts[j])
        else:
            row.append(art_line, style=theme.accent)
        if width is not None:
            row.truncate(width, overflow="crop")
        lines.append(row)
    return lines


def _to_ansi(report: Text) -> str:
    buffer = StringIO()
    console = Console(
        file=buffer,
        force_terminal=True,
        color_system="standard",
        no_color=False,
        legacy_windows=False,
        highlight=False,
        emoji=False,
        markup=False,
    )
    with console.capture() as capture:
        console.print(report, end="", soft_wrap=True)
    return capture.get()


def render(
    snapshot: Snapshot,
    art: ArtBlock,
    theme: Theme,
    config: Optional[FetchConfig] = None,
    width: Optional[int] = None,
) -> str:
    """Render the report as a string, one ``\\n``-separated row per line.

    With ``theme.enabled`` off the result is the plain text of the layout,
    whatever styles the theme carries.
    """
    report = Text("\n", no_wrap=True, end="").join(layout(snapshot, art, theme, config, width))
    if not theme.enabled:
        return report.plain
    return _to_ansi(report)
