"""Turn annotation sets into decorations a front-end can draw."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

from .config import AppConfig
from .localization import ngettext
from .models import Annotation, AnnotationKind, TargetAnnotations

_ANSI_UNDERLINES: Mapping[str, str] = {
    "solid": "\x1b[4m",
    "double": "\x1b[4:2m",
    "wavy": "\x1b[4:3m",
    "dotted": "\x1b[4:4m",
    "dashed": "\x1b[4:5m",
}
_ANSI_RESET = "\x1b[0m"

__all__ = [
    "Decoration",
    "DecorationStyle",
    "FileDecorations",
    "build_decorations",
    "hover_message",
    "render_text",
    "styles_from_config",
]


@dataclass(frozen=True)
class DecorationStyle:
    """Underline style and colours for one annotation kind."""

    kind: AnnotationKind
    underline_style: str
    color: str
    light_color: str
    dark_color: str

    def color_for(self, theme: str) -> str:
        if theme == "light":
            return self.light_color
        if theme == "dark":
            return self.dark_color
        return self.color

    def text_decoration(self, theme: str = "auto") -> str:
        """Return a CSS-like ``text-decoration`` value for ``theme``."""

        if theme in ("light", "dark"):
            return f"underline {self.underline_style} {self.color_for(theme)}"
        return f"underline {self.underline_style}"


def styles_from_config(config: AppConfig) -> dict[AnnotationKind, DecorationStyle]:
    return {
        AnnotationKind.ADDED: DecorationStyle(
            kind=AnnotationKind.ADDED,
            underline_style=config.added_underline_style,
            color=config.added_underline_color,
            light_color=config.added_underline_color_light,
            dark_color=config.added_underline_color_dark,
        ),
        AnnotationKind.REMOVED: DecorationStyle(
            kind=AnnotationKind.REMOVED,
            underline_style=config.removed_underline_style,
            color=config.removed_underline_color,
            light_color=config.removed_underline_color_light,
            dark_color=config.removed_underline_color_dark,
        ),
    }


def hover_message(kind: AnnotationKind, count: int, source_label: str) -> str:
    """Return the user-facing description of a block of ``count`` lines."""

    if kind is AnnotationKind.ADDED:
        template = ngettext(
            "Block of {count} added line (from {source}).",
            "Block of {count} added lines (from {source}).",
            count,
        )
    else:
        template = ngettext(
            "Block of {count} removed line (from {source}).",
            "Block of {count} removed lines (from {source}).",
            count,
        )
    return template.format(count=count, source=source_label)


@dataclass(frozen=True)
class Decoration:
    """Whole-line decoration placed on zero-based ``line``."""

    kind: AnnotationKind
    line: int
    block_length: int
    hover_message: str


@dataclass
class FileDecorations:
    added: List[Decoration]
    removed: List[Decoration]

    def at(self, line: int) -> List[Decoration]:
        return [item for item in (*self.added, *self.removed) if item.line == line]


def _decorations(
    kind: AnnotationKind,
    annotations: Iterable[Annotation],
    line_count: Optional[int],
) -> List[Decoration]:
    items = []
    for annotation in sorted(annotations, key=lambda a: a.line):
        if line_count is not None and annotation.line >= line_count:
            continue
        items.append(
            Decoration(
                kind=kind,
                line=annotation.line,
                block_length=annotation.block_length,
                hover_message=hover_message(
                    kind, annotation.block_length, annotation.source_label
                ),
            )
        )
    return items


def build_decorations(
    annotations: TargetAnnotations, line_count: Optional[int] = None
) -> FileDecorations:
    """Build sorted decorations, dropping lines past ``line_count`` when given."""

    return FileDecorations(
        added=_decorations(
            AnnotationKind.ADDED, annotations.added.values(), line_count
        ),
        removed=_decorations(
            AnnotationKind.REMOVED, annotations.removed.values(), line_count
        ),
    )


def _gutter_marker(decorations: Sequence[Decoration]) -> str:
    marker = ""
    for item in sorted(decorations, key=lambda d: d.kind is AnnotationKind.REMOVED):
        sign = "+" if item.kind is AnnotationKind.ADDED else "-"
        marker += f"{sign}{item.block_length}"
    return marker


def render_text(
    lines: Sequence[str],
    decorations: FileDecorations,
    *,
    styles: Mapping[AnnotationKind, DecorationStyle] | None = None,
    use_color: bool = False,
) -> str:
    """Render ``lines`` with a line-number column and a block marker column.

    With ``use_color`` decorated lines are underlined using ANSI escapes in
    the configured underline style (the added style wins on shared lines).
    """

    resolved_styles = styles or styles_from_config(AppConfig())
    by_line: dict[int, List[Decoration]] = {}
    for item in (*decorations.added, *decorations.removed):
        by_line.setdefault(item.line, []).append(item)
    markers = {line: _gutter_marker(items) for line, items in by_line.items()}
    marker_width = max((len(marker) for marker in markers.values()), default=0)
    number_width = len(str(len(lines))) if lines else 1

    rendered: List[str] = []
    for index, text in enumerate(lines):
        marker = markers.get(index, "")
        body = text.rstrip("\n")
        if use_color and marker:
            kinds = {item.kind for item in by_line[index]}
            kind = (
                AnnotationKind.ADDED
                if AnnotationKind.ADDED in kinds
                else AnnotationKind.REMOVED
            )
            escape = _ANSI_UNDERLINES.get(
                resolved_styles[kind].underline_style, _ANSI_UNDERLINES["solid"]
            )
            body = f"{escape}{body}{_ANSI_RESET}"
        prefix = f"{index + 1:>{number_width}} {marker:<{marker_width}} |"
        rendered.append(f"{prefix} {body}" if body else prefix)
    return "\n".join(rendered)
