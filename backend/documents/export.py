"""
Rendering of editor snapshots (Tiptap JSON) to Markdown, DOCX and PDF.

The snapshot is a ``doc`` node whose ``content`` holds block nodes
(headings, paragraphs, lists, task lists, code blocks, blockquotes, rules,
tables and images). Inline text carries ``marks`` for bold, italic, code,
links and comment highlights.
"""
from __future__ import annotations

import html
import logging
import re
import zipfile
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, Iterable, List, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

FORMAT_PDF = "pdf"
FORMAT_DOCX = "docx"
FORMAT_MARKDOWN = "markdown"
EXPORT_FORMATS = (FORMAT_PDF, FORMAT_DOCX, FORMAT_MARKDOWN)

CONTENT_TYPES = {
    FORMAT_PDF: "application/pdf",
    FORMAT_DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    FORMAT_MARKDOWN: "text/markdown; charset=utf-8",
}
EXTENSIONS = {
    FORMAT_PDF: ".pdf",
    FORMAT_DOCX: ".docx",
    FORMAT_MARKDOWN: ".md",
}

TEMPLATES = ("default", "minimal", "professional", "modern")
PAPER_SIZES = ("A4", "Letter")
DEFAULT_MARGIN_MM = 20
IMAGE_TIMEOUT_SECONDS = 10

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


class ExportError(RuntimeError):
    """Raised when a snapshot cannot be converted."""


@dataclass
class ExportOptions:
    include_comments: bool = True
    include_images: bool = True
    paper_size: str = "A4"
    margins: Dict[str, float] = field(default_factory=lambda: {
        "top": DEFAULT_MARGIN_MM,
        "right": DEFAULT_MARGIN_MM,
        "bottom": DEFAULT_MARGIN_MM,
        "left": DEFAULT_MARGIN_MM,
    })
    header_footer: bool = False
    template: str = "default"

    @classmethod
    def from_payload(cls, payload: Any) -> "ExportOptions":
        """Build options from the request's ``options`` object (camelCase keys)."""
        options = cls()
        if not isinstance(payload, dict):
            return options
        if payload.get("includeComments") is False:
            options.include_comments = False
        if payload.get("includeImages") is False:
            options.include_images = False
        if payload.get("paperSize") in PAPER_SIZES:
            options.paper_size = payload["paperSize"]
        if payload.get("template") in TEMPLATES:
            options.template = payload["template"]
        options.header_footer = payload.get("headerFooter") is True
        margins = payload.get("margins")
        if isinstance(margins, dict):
            for side in ("top", "right", "bottom", "left"):
                value = margins.get(side)
                if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
                    options.margins[side] = value
        return options


@dataclass(frozen=True)
class ExportResult:
    content: bytes
    filename: str
    content_type: str


def export_filename(title: str, fmt: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", title or "Untitled") + EXTENSIONS[fmt]


def _children(node: Dict[str, Any]) -> List[Dict[str, Any]]:
    content = node.get("content") if isinstance(node, dict) else None
    return [child for child in content if isinstance(child, dict)] if isinstance(content, list) else []


def _attrs(node: Dict[str, Any]) -> Dict[str, Any]:
    attrs = node.get("attrs")
    return attrs if isinstance(attrs, dict) else {}


def _marks(node: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    marks = node.get("marks")
    if not isinstance(marks, list):
        return {}
    return {mark["type"]: mark.get("attrs") or {} for mark in marks if isinstance(mark, dict) and "type" in mark}


def _heading_level(node) -> int:
    level = _attrs(node).get("level") or 1
    return level if isinstance(level, int) and 1 <= level <= 6 else 1


def _code_text(node) -> str:
    return "\n".join(child.get("text") or "" for child in _children(node))


def _table_rows(node):
    for row in _children(node):
        if row.get("type") != "tableRow":
            continue
        yield [cell for cell in _children(row) if cell.get("type") in ("tableCell", "tableHeader")]


# Markdown ---------------------------------------------------------------------

def _inline_markdown(content: Iterable[Dict[str, Any]]) -> str:
    text = ""
    for node in content:
        if node.get("type") == "text" and node.get("text"):
            formatted = node["text"]
            marks = _marks(node)
            if "code" in marks:
                formatted = f"`{formatted}`"
            if "bold" in marks:
                formatted = f"**{formatted}**"
            if "italic" in marks:
                formatted = f"_{formatted}_"
            href = marks.get("link", {}).get("href")
            if href:
                formatted = f"[{formatted}]({href})"
            text += formatted
        elif node.get("type") == "hardBreak":
            text += "  \n"
    return text


def _list_markdown(node, options: ExportOptions, level: int) -> List[str]:
    lines = []
    indent = "  " * level
    node_type = node.get("type")
    for index, item in enumerate(_children(node), start=1):
        if node_type == "taskList":
            if item.get("type") != "taskItem":
                continue
            checkbox = "[x]" if _attrs(item).get("checked") else "[ ]"
            prefix = f"- {checkbox} "
        else:
            if item.get("type") != "listItem":
                continue
            prefix = f"{index}. " if node_type == "orderedList" else "- "
        for child in _children(item):
            if child.get("type") in ("bulletList", "orderedList", "taskList"):
                lines.extend(_list_markdown(child, options, level + 1))
            else:
                lines.append(indent + prefix + _inline_markdown(_children(child)))
    return lines


def _node_markdown(node, options: ExportOptions) -> str:
    node_type = node.get("type")
    if node_type == "heading":
        return "#" * _heading_level(node) + " " + _inline_markdown(_children(node))
    if node_type == "paragraph":
        return _inline_markdown(_children(node))
    if node_type in ("bulletList", "orderedList", "taskList"):
        return "\n".join(_list_markdown(node, options, 0))
    if node_type == "codeBlock":
        language = _attrs(node).get("language") or ""
        return f"```{language}\n{_code_text(node)}\n```"
    if node_type == "blockquote":
        return "\n".join("> " + _inline_markdown(_children(child)) for child in _children(node))
    if node_type == "horizontalRule":
        return "---"
    if node_type == "table":
        rows = [
            [" ".join(_inline_markdown(_children(part)) for part in _children(cell)) for cell in cells]
            for cells in _table_rows(node)
        ]
        if not rows:
            return ""
        lines = ["| " + " | ".join(rows[0]) + " |", "| " + " | ".join(["---"] * len(rows[0])) + " |"]
        lines.extend("| " + " | ".join(row) + " |" for row in rows[1:])
        return "\n".join(lines)
    if node_type == "image":
        src = _attrs(node).get("src")
        if options.include_images and src:
            return f"![{_attrs(node).get('alt') or ''}]({src})"
    return ""


def to_markdown(snapshot: Dict[str, Any], options: Optional[ExportOptions] = None) -> str:
    options = options or ExportOptions()
    blocks = [_node_markdown(node, options) for node in _children(snapshot)]
    return "\n\n".join(block for block in blocks if block)


# Templates --------------------------------------------------------------------

@dataclass(frozen=True)
class ExportTheme:
    """Typography of an export template, shared by the DOCX and PDF writers (sizes in points)."""

    pdf_font: str
    pdf_bold_font: str
    pdf_italic_font: str
    docx_font: str
    body_size: float
    line_height: float
    heading_sizes: tuple
    text_color: str
    heading_color: str
    quote_color: str
    table_header_fill: str
    table_header_color: str


TEMPLATE_THEMES = {
    "default": ExportTheme(
        pdf_font="Helvetica", pdf_bold_font="Helvetica-Bold", pdf_italic_font="Helvetica-Oblique",
        docx_font="Calibri", body_size=10.5, line_height=1.6, heading_sizes=(24, 18, 13.5),
        text_color="1A1A1A", heading_color="1A1A1A", quote_color="666666",
        table_header_fill="F5F5F5", table_header_color="1A1A1A",
    ),
    "minimal": ExportTheme(
        pdf_font="Times-Roman", pdf_bold_font="Times-Bold", pdf_italic_font="Times-Italic",
        docx_font="Georgia", body_size=10, line_height=1.7, heading_sizes=(21, 16.5, 12),
        text_color="2A2A2A", heading_color="000000", quote_color="666666",
        table_header_fill="FFFFFF", table_header_color="000000",
    ),
    "professional": ExportTheme(
        pdf_font="Helvetica", pdf_bold_font="Helvetica-Bold", pdf_italic_font="Helvetica-Oblique",
        docx_font="Calibri", body_size=11, line_height=1.5, heading_sizes=(22, 16, 13),
        text_color="1F2937", heading_color="1E3A8A", quote_color="374151",
        table_header_fill="1E3A8A", table_header_color="FFFFFF",
    ),
    "modern": ExportTheme(
        pdf_font="Helvetica", pdf_bold_font="Helvetica-Bold", pdf_italic_font="Helvetica-Oblique",
        docx_font="Segoe UI", body_size=11.5, line_height=1.7, heading_sizes=(27, 21, 15),
        text_color="18181B", heading_color="18181B", quote_color="3B82F6",
        table_header_fill="F4F4F5", table_header_color="18181B",
    ),
}


def export_theme(options: ExportOptions) -> ExportTheme:
    return TEMPLATE_THEMES.get(options.template, TEMPLATE_THEMES["default"])


# Images -----------------------------------------------------------------------

def fetch_image(src: str) -> Optional[bytes]:
    """Download an image for embedding; ``None`` when it cannot be fetched."""
    url = src
    if src.startswith("/"):
        url = settings.WORKBENCH_BASE_URL.rstrip("/") + src
    try:
        response = requests.get(url, timeout=IMAGE_TIMEOUT_SECONDS)
    except requests.RequestException as exc:
        logger.warning("Failed to fetch image %s for export: %s", url, exc)
        return None
    if response.status_code >= 400:
        logger.warning("Failed to fetch image %s for export: HTTP %s", url, response.status_code)
        return None
    return response.content


# DOCX -------------------------------------------------------------------------

def _shade(element, fill: str) -> None:
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn

    properties = element.get_or_add_pPr() if hasattr(element, "get_or_add_pPr") else element.get_or_add_tcPr()
    shading = OxmlElement("w:shd")
    shading.set(qn("w:val"), "clear")
    shading.set(qn("w:color"), "auto")
    shading.set(qn("w:fill"), fill)
    properties.append(shading)


def _paragraph_border(paragraph, edge: str, size: int) -> None:
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn

    properties = paragraph._p.get_or_add_pPr()
    borders = OxmlElement("w:pBdr")
    line = OxmlElement(f"w:{edge}")
    line.set(qn("w:val"), "single")
    line.set(qn("w:sz"), str(size))
    line.set(qn("w:space"), "1")
    line.set(qn("w:color"), "D0D0D0")
    borders.append(line)
    properties.append(borders)


def _apply_docx_theme(document, theme: ExportTheme) -> None:
    from docx.shared import Pt, RGBColor

    normal = document.styles["Normal"]
    normal.font.name = theme.docx_font
    normal.font.size = Pt(theme.body_size)
    normal.font.color.rgb = RGBColor.from_string(theme.text_color)
    normal.paragraph_format.line_spacing = theme.line_height
    for level, size in enumerate(theme.heading_sizes, start=1):
        heading = document.styles[f"Heading {level}"]
        heading.font.name = theme.docx_font
        heading.font.size = Pt(size)
        heading.font.color.rgb = RGBColor.from_string(theme.heading_color)


def _color_runs(paragraph, hex_color: str, **flags) -> None:
    from docx.shared import RGBColor

    for run in paragraph.runs:
        run.font.color.rgb = RGBColor.from_string(hex_color)
        for name, value in flags.items():
            setattr(run, name, value)


def _docx_runs(paragraph, content: Iterable[Dict[str, Any]]) -> None:
    from docx.shared import Pt

    for node in content:
        if node.get("type") == "hardBreak":
            paragraph.add_run().add_break()
            continue
        if node.get("type") != "text" or not node.get("text"):
            continue
        marks = _marks(node)
        text = node["text"]
        href = marks.get("link", {}).get("href")
        if href:
            text = f"{text} ({href})"
        run = paragraph.add_run(text)
        run.bold = "bold" in marks
        run.italic = "italic" in marks
        if "code" in marks:
            run.font.name = "Courier New"
            run.font.size = Pt(10)


def _docx_image(document, node, options: ExportOptions) -> None:
    from docx.shared import Inches, RGBColor

    src = _attrs(node).get("src")
    if not src:
        return
    payload = fetch_image(src) if options.include_images else None
    if payload is not None:
        try:
            document.add_picture(BytesIO(payload), width=Inches(6))
            return
        except Exception:
            logger.warning("Unsupported image %s in export", src, exc_info=True)
    run = document.add_paragraph().add_run(f"[Image unavailable: {src}]")
    run.italic = True
    run.font.color.rgb = RGBColor(0x99, 0x99, 0x99)


def _docx_list(document, node, options: ExportOptions) -> None:
    node_type = node.get("type")
    for item in _children(node):
        if node_type == "taskList":
            paragraph = document.add_paragraph()
            paragraph.add_run("☑ " if _attrs(item).get("checked") else "☐ ")
            for child in _children(item):
                _docx_runs(paragraph, _children(child))
            continue
        style = "List Number" if node_type == "orderedList" else "List Bullet"
        for child in _children(item):
            if child.get("type") in ("bulletList", "orderedList", "taskList"):
                _docx_list(document, child, options)
            else:
                _docx_runs(document.add_paragraph(style=style), _children(child))


def _docx_node(document, node, options: ExportOptions) -> None:
    from docx.shared import Inches, Pt

    node_type = node.get("type")
    if node_type == "heading":
        _docx_runs(document.add_heading(level=min(_heading_level(node), 3)), _children(node))
    elif node_type == "paragraph":
        _docx_runs(document.add_paragraph(), _children(node))
    elif node_type in ("bulletList", "orderedList", "taskList"):
        _docx_list(document, node, options)
    elif node_type == "codeBlock":
        paragraph = document.add_paragraph()
        run = paragraph.add_run(_code_text(node))
        run.font.name = "Courier New"
        run.font.size = Pt(10)
        _shade(paragraph._p, "F5F5F5")
    elif node_type == "blockquote":
        for child in _children(node):
            paragraph = document.add_paragraph()
            paragraph.paragraph_format.left_indent = Inches(0.5)
            _paragraph_border(paragraph, "left", 24)
            _docx_runs(paragraph, _children(child))
            _color_runs(paragraph, export_theme(options).quote_color)
    elif node_type == "horizontalRule":
        _paragraph_border(document.add_paragraph(), "top", 12)
    elif node_type == "table":
        rows = list(_table_rows(node))
        columns = max((len(cells) for cells in rows), default=0)
        if not rows or not columns:
            return
        table = document.add_table(rows=len(rows), cols=columns)
        table.style = "Table Grid"
        for row_index, cells in enumerate(rows):
            for column, cell in enumerate(cells):
                target = table.cell(row_index, column)
                target.text = " ".join(_inline_markdown(_children(part)) for part in _children(cell))
                if cell.get("type") == "tableHeader":
                    theme = export_theme(options)
                    _shade(target._tc, theme.table_header_fill)
                    for paragraph in target.paragraphs:
                        _color_runs(paragraph, theme.table_header_color, bold=True)
    elif node_type == "image":
        _docx_image(document, node, options)


def to_docx(snapshot: Dict[str, Any], options: Optional[ExportOptions] = None, title: str = "") -> bytes:
    from docx import Document as DocxDocument
    from docx.shared import Mm

    options = options or ExportOptions()
    document = DocxDocument()
    _apply_docx_theme(document, export_theme(options))
    for section in document.sections:
        section.top_margin = Mm(options.margins["top"])
        section.right_margin = Mm(options.margins["right"])
        section.bottom_margin = Mm(options.margins["bottom"])
        section.left_margin = Mm(options.margins["left"])
        if options.header_footer and title:
            section.header.paragraphs[0].text = title
    document.core_properties.title = title
    for node in _children(snapshot):
        _docx_node(document, node, options)
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


# PDF --------------------------------------------------------------------------

def _pdf_inline(content: Iterable[Dict[str, Any]], options: ExportOptions) -> str:
    parts = []
    for node in content:
        if node.get("type") == "hardBreak":
            parts.append("<br/>")
            continue
        if node.get("type") != "text" or not node.get("text"):
            continue
        text = html.escape(node["text"], quote=False)
        marks = _marks(node)
        if "code" in marks:
            text = f'<font face="Courier">{text}</font>'
        if "bold" in marks:
            text = f"<b>{text}</b>"
        if "italic" in marks:
            text = f"<i>{text}</i>"
        href = marks.get("link", {}).get("href")
        if href:
            text = f'<a href="{html.escape(href)}" color="#0066cc">{text}</a>'
        if "comment" in marks and options.include_comments:
            text = f'<font backColor="#fff3cd">{text}</font>'
        parts.append(text)
    return "".join(parts)


def _pdf_styles(theme: ExportTheme):
    from reportlab.lib import colors
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet

    styles = getSampleStyleSheet()
    body = styles["BodyText"]
    body.fontName = theme.pdf_font
    body.fontSize = theme.body_size
    body.leading = theme.body_size * theme.line_height
    body.textColor = colors.HexColor(f"#{theme.text_color}")
    for level, size in enumerate(theme.heading_sizes, start=1):
        heading = styles[f"Heading{level}"]
        heading.fontName = theme.pdf_bold_font
        heading.fontSize = size
        heading.leading = size * 1.25
        heading.textColor = colors.HexColor(f"#{theme.heading_color}")
    styles.add(ParagraphStyle("Quote", parent=body, leftIndent=16, fontName=theme.pdf_italic_font,
                              textColor=colors.HexColor(f"#{theme.quote_color}")))
    styles.add(ParagraphStyle("TableHeader", parent=body, fontName=theme.pdf_bold_font,
                              textColor=colors.HexColor(f"#{theme.table_header_color}")))
    return styles


def _pdf_flowables(node, options: ExportOptions, styles, width) -> list:
    from reportlab.lib import colors
    from reportlab.platypus import HRFlowable, Image, ListFlowable, ListItem, Paragraph, Preformatted, Table, TableStyle

    node_type = node.get("type")
    if node_type == "heading":
        style = styles[f"Heading{min(_heading_level(node), 3)}"]
        return [Paragraph(_pdf_inline(_children(node), options), style)]
    if node_type == "paragraph":
        return [Paragraph(_pdf_inline(_children(node), options) or "&nbsp;", styles["BodyText"])]
    if node_type in ("bulletList", "orderedList"):
        items = []
        for item in _children(node):
            flowables = []
            for child in _children(item):
                flowables.extend(_pdf_flowables(child, options, styles, width))
            items.append(ListItem(flowables))
        kwargs = {"bulletType": "1"} if node_type == "orderedList" else {"bulletType": "bullet", "start": "•"}
        return [ListFlowable(items, **kwargs)]
    if node_type == "taskList":
        flowables = []
        for item in _children(node):
            box = "☑" if _attrs(item).get("checked") else "☐"
            text = " ".join(_pdf_inline(_children(child), options) for child in _children(item))
            flowables.append(Paragraph(f"{box} {text}", styles["BodyText"]))
        return flowables
    if node_type == "codeBlock":
        return [Preformatted(_code_text(node), styles["Code"])]
    if node_type == "blockquote":
        return [
            Paragraph(_pdf_inline(_children(child), options), styles["Quote"])
            for child in _children(node)
        ]
    if node_type == "horizontalRule":
        return [HRFlowable(width="100%", thickness=1, color=colors.HexColor("#d0d0d0"), spaceBefore=8, spaceAfter=8)]
    if node_type == "table":
        rows = list(_table_rows(node))
        if not rows:
            return []
        data = [
            [Paragraph(" ".join(_pdf_inline(_children(part), options) for part in _children(cell)),
                       styles["TableHeader" if cell.get("type") == "tableHeader" else "BodyText"])
             for cell in cells]
            for cells in rows
        ]
        table = Table(data, hAlign="LEFT")
        commands = [("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#d0d0d0"))]
        if rows[0] and all(cell.get("type") == "tableHeader" for cell in rows[0]):
            commands.append(("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(f"#{export_theme(options).table_header_fill}")))
        table.setStyle(TableStyle(commands))
        return [table]
    if node_type == "image":
        src = _attrs(node).get("src")
        if not src or not options.include_images:
            return []
        payload = fetch_image(src)
        if payload is not None:
            try:
                image = Image(BytesIO(payload))
                if image.drawWidth > width:
                    ratio = width / image.drawWidth
                    image.drawWidth, image.drawHeight = width, image.drawHeight * ratio
                return [image]
            except Exception:
                logger.warning("Unsupported image %s in export", src, exc_info=True)
        return [Paragraph(f"<i>[Image unavailable: {html.escape(src)}]</i>", styles["BodyText"])]
    return []


def to_pdf(snapshot: Dict[str, Any], options: Optional[ExportOptions] = None, title: str = "") -> bytes:
    from reportlab.lib.pagesizes import A4, letter
    from reportlab.lib.units import mm
    from reportlab.platypus import SimpleDocTemplate

    options = options or ExportOptions()
    margins = options.margins
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter if options.paper_size == "Letter" else A4,
        topMargin=margins["top"] * mm,
        rightMargin=margins["right"] * mm,
        bottomMargin=margins["bottom"] * mm,
        leftMargin=margins["left"] * mm,
        title=title,
    )
    styles = _pdf_styles(export_theme(options))

    def decorate(canvas, document):
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.drawCentredString(document.pagesize[0] / 2, document.pagesize[1] - 10 * mm, title)
        canvas.drawCentredString(document.pagesize[0] / 2, 10 * mm, str(document.page))
        canvas.restoreState()

    story = []
    for node in _children(snapshot):
        story.extend(_pdf_flowables(node, options, styles, doc.width))
    if not story:
        story = _pdf_flowables({"type": "paragraph"}, options, styles, doc.width)

    if options.header_footer:
        doc.build(story, onFirstPage=decorate, onLaterPages=decorate)
    else:
        doc.build(story)
    return buffer.getvalue()


# Entry points -----------------------------------------------------------------

def render_export(snapshot: Dict[str, Any], fmt: str, options: ExportOptions, title: str) -> ExportResult:
    """Convert one snapshot; any converter failure surfaces as ``ExportError``."""
    if fmt not in EXPORT_FORMATS:
        raise ExportError(f"Unsupported export format {fmt!r}")
    snapshot = snapshot if isinstance(snapshot, dict) else {"type": "doc", "content": []}
    try:
        if fmt == FORMAT_MARKDOWN:
            content = to_markdown(snapshot, options).encode("utf-8")
        elif fmt == FORMAT_DOCX:
            content = to_docx(snapshot, options, title)
        else:
            content = to_pdf(snapshot, options, title)
    except ExportError:
        raise
    except Exception as exc:
        raise ExportError(str(exc)) from exc
    return ExportResult(content=content, filename=export_filename(title, fmt), content_type=CONTENT_TYPES[fmt])


def build_zip(results: Iterable[ExportResult]) -> bytes:
    """Zip the exported files; repeated names get a numeric suffix."""
    buffer = BytesIO()
    seen: Dict[str, int] = {}
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for result in results:
            name = result.filename
            count = seen.get(name, 0)
            seen[name] = count + 1
            if count:
                stem, dot, extension = name.rpartition(".")
                name = f"{stem}_{count}.{extension}" if dot else f"{name}_{count}"
            archive.writestr(name, result.content)
    return buffer.getvalue()
