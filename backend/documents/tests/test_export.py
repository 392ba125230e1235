import io
import zipfile

import pytest

from documents.export import (
    TEMPLATE_THEMES,
    ExportError,
    ExportOptions,
    ExportResult,
    build_zip,
    export_filename,
    render_export,
    _pdf_styles,
    to_markdown,
)


def text(value, *marks):
    node = {"type": "text", "text": value}
    if marks:
        node["marks"] = list(marks)
    return node


def paragraph(*content):
    return {"type": "paragraph", "content": list(content)}


def doc(*blocks):
    return {"type": "doc", "content": list(blocks)}


SNAPSHOT = doc(
    {"type": "heading", "attrs": {"level": 2}, "content": [text("Plan")]},
    paragraph(text("Ship "), text("now", {"type": "bold"}, {"type": "italic"})),
    paragraph(text("see "), text("site", {"type": "link", "attrs": {"href": "https://example.com"}})),
    {
        "type": "bulletList",
        "content": [
            {"type": "listItem", "content": [paragraph(text("one"))]},
            {"type": "listItem", "content": [paragraph(text("two"))]},
        ],
    },
    {
        "type": "orderedList",
        "content": [
            {"type": "listItem", "content": [paragraph(text("first"))]},
            {"type": "listItem", "content": [paragraph(text("second"))]},
        ],
    },
    {
        "type": "taskList",
        "content": [
            {"type": "taskItem", "attrs": {"checked": True}, "content": [paragraph(text("done"))]},
            {"type": "taskItem", "attrs": {"checked": False}, "content": [paragraph(text("todo"))]},
        ],
    },
    {"type": "codeBlock", "attrs": {"language": "python"}, "content": [text("print(1)")]},
    {"type": "blockquote", "content": [paragraph(text("quoted"))]},
    {"type": "horizontalRule"},
    {
        "type": "table",
        "content": [
            {
                "type": "tableRow",
                "content": [
                    {"type": "tableHeader", "content": [paragraph(text("A"))]},
                    {"type": "tableHeader", "content": [paragraph(text("B"))]},
                ],
            },
            {
                "type": "tableRow",
                "content": [
                    {"type": "tableCell", "content": [paragraph(text("1"))]},
                    {"type": "tableCell", "content": [paragraph(text("2"))]},
                ],
            },
        ],
    },
)


def test_markdown_renders_every_block_type():
    expected = "\n\n".join([
        "## Plan",
        "Ship _**now**_",
        "see [site](https://example.com)",
        "- one\n- two",
        "1. first\n2. second",
        "- [x] done\n- [ ] todo",
        "```python\nprint(1)\n```",
        "> quoted",
        "---",
        "| A | B |\n| --- | --- |\n| 1 | 2 |",
    ])

    assert to_markdown(SNAPSHOT) == expected


def test_markdown_nested_lists_are_indented():
    snapshot = doc({
        "type": "bulletList",
        "content": [{
            "type": "listItem",
            "content": [
                paragraph(text("parent")),
                {"type": "bulletList", "content": [{"type": "listItem", "content": [paragraph(text("child"))]}]},
            ],
        }],
    })

    assert to_markdown(snapshot) == "- parent\n  - child"


def test_markdown_images_follow_options():
    snapshot = doc({"type": "image", "attrs": {"src": "/uploads/a.png", "alt": "chart"}}, paragraph(text("after")))

    assert to_markdown(snapshot) == "![chart](/uploads/a.png)\n\nafter"
    assert to_markdown(snapshot, ExportOptions(include_images=False)) == "after"


def test_markdown_ignores_malformed_nodes():
    snapshot = {"type": "doc", "content": ["junk", {"type": "mystery"}, paragraph(text("ok")), {"content": None}]}

    assert to_markdown(snapshot) == "ok"
    assert to_markdown({"type": "doc"}) == ""


def test_heading_level_out_of_range_falls_back_to_one():
    snapshot = doc({"type": "heading", "attrs": {"level": 9}, "content": [text("Title")]})

    assert to_markdown(snapshot) == "# Title"


def test_docx_styles_follow_template():
    from docx import Document

    minimal = render_export(SNAPSHOT, "docx", ExportOptions(template="minimal"), "Plan")
    default = render_export(SNAPSHOT, "docx", ExportOptions(), "Plan")

    assert Document(io.BytesIO(minimal.content)).styles["Normal"].font.name == "Georgia"
    assert Document(io.BytesIO(default.content)).styles["Normal"].font.name == "Calibri"


def test_docx_table_header_shading_follows_template():
    professional = render_export(SNAPSHOT, "docx", ExportOptions(template="professional"), "Plan")
    default = render_export(SNAPSHOT, "docx", ExportOptions(), "Plan")

    with zipfile.ZipFile(io.BytesIO(professional.content)) as archive:
        assert b'w:fill="1E3A8A"' in archive.read("word/document.xml")
    with zipfile.ZipFile(io.BytesIO(default.content)) as archive:
        assert b'w:fill="1E3A8A"' not in archive.read("word/document.xml")


def test_pdf_fonts_follow_template():
    snapshot = doc(paragraph(text("Body copy")))

    minimal = render_export(snapshot, "pdf", ExportOptions(template="minimal"), "Plan")
    default = render_export(snapshot, "pdf", ExportOptions(), "Plan")

    assert b"/Times-Roman" in minimal.content
    assert b"/Times-Roman" not in default.content


def test_pdf_styles_per_template():
    minimal = _pdf_styles(TEMPLATE_THEMES["minimal"])
    professional = _pdf_styles(TEMPLATE_THEMES["professional"])

    assert minimal["BodyText"].fontName == "Times-Roman"
    assert minimal["Heading1"].fontName == "Times-Bold"
    assert professional["Heading1"].textColor.hexval() == "0x1e3a8a"
    assert professional["TableHeader"].textColor.hexval() == "0xffffff"


def test_options_from_payload_ignores_invalid_values():
    options = ExportOptions.from_payload({
        "includeComments": False,
        "includeImages": "no",
        "paperSize": "A3",
        "template": "fancy",
        "headerFooter": True,
        "margins": {"top": -1, "left": 12, "right": True},
    })

    assert options.include_comments is False
    assert options.include_images is True
    assert options.paper_size == "A4"
    assert options.template == "default"
    assert options.header_footer is True
    assert options.margins == {"top": 20, "right": 20, "bottom": 20, "left": 12}
    assert ExportOptions.from_payload(None) == ExportOptions()


def test_export_filename_replaces_unsafe_characters():
    assert export_filename("Q3 plan: v2", "markdown") == "Q3_plan__v2.md"
    assert export_filename("", "pdf") == "Untitled.pdf"


def test_render_export_markdown():
    result = render_export(SNAPSHOT, "markdown", ExportOptions(), "Plan")

    assert result.filename == "Plan.md"
    assert result.content_type == "text/markdown; charset=utf-8"
    assert result.content.startswith(b"## Plan")


def test_render_export_docx_is_a_word_document():
    result = render_export(SNAPSHOT, "docx", ExportOptions(header_footer=True), "Plan")

    assert result.filename == "Plan.docx"
    assert result.content[:2] == b"PK"
    with zipfile.ZipFile(io.BytesIO(result.content)) as archive:
        assert "word/document.xml" in archive.namelist()
        assert b"print(1)" in archive.read("word/document.xml")


@pytest.mark.parametrize("paper_size", ["A4", "Letter"])
def test_render_export_pdf(paper_size):
    options = ExportOptions(paper_size=paper_size, header_footer=True)
    snapshot = doc(*[block for block in SNAPSHOT["content"] if block["type"] != "taskList"])

    result = render_export(snapshot, "pdf", options, "Plan")

    assert result.content_type == "application/pdf"
    assert result.content.startswith(b"%PDF")


def test_render_export_pdf_of_empty_document():
    assert render_export(doc(), "pdf", ExportOptions(), "Empty").content.startswith(b"%PDF")


def test_render_export_rejects_unknown_format():
    with pytest.raises(ExportError):
        render_export(SNAPSHOT, "odt", ExportOptions(), "Plan")


def test_build_zip_deduplicates_names():
    archive = build_zip([
        ExportResult(b"a", "Plan.md", "text/markdown"),
        ExportResult(b"b", "Plan.md", "text/markdown"),
        ExportResult(b"c", "Notes.md", "text/markdown"),
    ])

    with zipfile.ZipFile(io.BytesIO(archive)) as zipped:
        assert zipped.namelist() == ["Plan.md", "Plan_1.md", "Notes.md"]
        assert zipped.read("Plan_1.md") == b"b"
