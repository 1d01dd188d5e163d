"""Underline annotated lines inside a Qt text document."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Mapping, Optional

from PySide6 import QtGui

from .models import AnnotationKind, TargetAnnotations
from .rendering import (
    Decoration,
    DecorationStyle,
    FileDecorations,
    build_decorations,
)

if TYPE_CHECKING:
    # ``PySide6`` exposes ``QSyntaxHighlighter`` as ``Any`` to type checkers.

    class _QSyntaxHighlighter(object):
        """Stub ``QSyntaxHighlighter`` for static analysis."""

        def __init__(self, document: QtGui.QTextDocument) -> None: ...

        def setFormat(
            self, start: int, count: int, format: QtGui.QTextCharFormat
        ) -> None: ...

        def currentBlock(self) -> QtGui.QTextBlock: ...

        def document(self) -> QtGui.QTextDocument: ...

        def rehighlight(self) -> None: ...

else:
    _QSyntaxHighlighter = QtGui.QSyntaxHighlighter


_UNDERLINE_STYLES: Mapping[str, QtGui.QTextCharFormat.UnderlineStyle] = {
    "solid": QtGui.QTextCharFormat.UnderlineStyle.SingleUnderline,
    # Qt has no double underline; fall back to a single one.
    "double": QtGui.QTextCharFormat.UnderlineStyle.SingleUnderline,
    "dashed": QtGui.QTextCharFormat.UnderlineStyle.DashUnderline,
    "dotted": QtGui.QTextCharFormat.UnderlineStyle.DotLine,
    "wavy": QtGui.QTextCharFormat.UnderlineStyle.WaveUnderline,
}


def palette_is_dark(palette: QtGui.QPalette) -> bool:
    """Return ``True`` when the window background of ``palette`` is dark."""

    return palette.color(QtGui.QPalette.ColorRole.Window).lightness() < 128


def resolve_theme(theme: str, palette: QtGui.QPalette) -> str:
    if theme in ("light", "dark"):
        return theme
    return "dark" if palette_is_dark(palette) else "light"


def build_char_format(style: DecorationStyle, theme: str) -> QtGui.QTextCharFormat:
    """Return the character format drawing ``style`` for ``theme``."""

    fmt = QtGui.QTextCharFormat()
    fmt.setFontUnderline(True)
    fmt.setUnderlineStyle(
        _UNDERLINE_STYLES.get(
            style.underline_style,
            QtGui.QTextCharFormat.UnderlineStyle.SingleUnderline,
        )
    )
    fmt.setUnderlineColor(QtGui.QColor(style.color_for(theme)))
    return fmt


class AnnotationHighlighter(_QSyntaxHighlighter):
    """Underline the lines of a document that carry annotations."""

    def __init__(
        self,
        document: QtGui.QTextDocument,
        styles: Mapping[AnnotationKind, DecorationStyle],
        *,
        theme: str = "light",
    ) -> None:
        super().__init__(document)
        self._styles = dict(styles)
        self._theme = theme
        self._formats: dict[AnnotationKind, QtGui.QTextCharFormat] = {}
        self._decorations = FileDecorations(added=[], removed=[])
        self._rebuild_formats()

    @property
    def decorations(self) -> FileDecorations:
        return self._decorations

    def set_styles(
        self,
        styles: Mapping[AnnotationKind, DecorationStyle],
        *,
        theme: Optional[str] = None,
    ) -> None:
        self._styles = dict(styles)
        if theme is not None:
            self._theme = theme
        self._rebuild_formats()
        self.rehighlight()

    def set_annotations(self, annotations: Optional[TargetAnnotations]) -> None:
        """Replace the decorations with ``annotations`` (``None`` clears them)."""

        if annotations is None:
            self._decorations = FileDecorations(added=[], removed=[])
        else:
            self._decorations = build_decorations(
                annotations, line_count=self.document().blockCount()
            )
        self.rehighlight()

    def decorations_at(self, line: int) -> List[Decoration]:
        return self._decorations.at(line)

    def tooltip_for(self, line: int) -> str:
        return "\n".join(item.hover_message for item in self.decorations_at(line))

    def _rebuild_formats(self) -> None:
        self._formats = {
            kind: build_char_format(style, self._theme)
            for kind, style in self._styles.items()
        }

    def highlightBlock(self, text: str) -> None:  # noqa: N802 (Qt signature)
        if not text:
            return
        decorations = self.decorations_at(self.currentBlock().blockNumber())
        if not decorations:
            return
        kinds = {item.kind for item in decorations}
        kind = (
            AnnotationKind.ADDED
            if AnnotationKind.ADDED in kinds
            else AnnotationKind.REMOVED
        )
        fmt = QtGui.QTextCharFormat(self._formats[kind])
        fmt.setToolTip("\n".join(item.hover_message for item in decorations))
        self.setFormat(0, len(text), fmt)


__all__ = [
    "AnnotationHighlighter",
    "build_char_format",
    "palette_is_dark",
    "resolve_theme",
]
