# exports.py

from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import (ListFlowable, ListItem, Paragraph,
                                SimpleDocTemplate, Spacer, Table, TableStyle)

from config import RISK_LABELS


def _slug(s: str):
    return "".join(ch.lower() if ch.isalnum() else "-" for ch in s).strip("-") or "project"


def export_filename(name, extension):
    """
    File name for a downloaded brief, e.g. "AGENTS-my-project.md".
    """
    return f"AGENTS-{_slug(name)}.{extension}"


def _markdown_story(document, styles):
    """
    Convert the generated markdown into flowables.

    Headings map to heading styles, consecutive "- " / "* " lines become one
    bullet list, anything else is a paragraph. Inline markup is kept as text.
    """
    story = []
    bullets = []

    def flush():
        if bullets:
            story.append(
                ListFlowable(
                    [ListItem(Paragraph(b, styles["Normal"])) for b in bullets],
                    bulletType="bullet",
                )
            )
            story.append(Spacer(1, 6))
            bullets.clear()

    for raw in document.splitlines():
        line = raw.strip()
        if line.startswith(("- ", "* ")):
            bullets.append(escape(line[2:]))
            continue
        flush()
        if not line:
            continue
        if line.startswith("# "):
            story += [Paragraph(escape(line[2:]), styles["Heading1"]), Spacer(1, 6)]
        elif line.startswith("## "):
            story += [Paragraph(escape(line[3:]), styles["Heading2"]), Spacer(1, 4)]
        elif line.startswith("#"):
            story += [Paragraph(escape(line.lstrip("#").strip()), styles["Heading3"]), Spacer(1, 4)]
        elif line.startswith(">"):
            story += [Paragraph(f"<i>{escape(line.lstrip('> '))}</i>", styles["Normal"]), Spacer(1, 4)]
        else:
            story += [Paragraph(escape(line), styles["Normal"]), Spacer(1, 4)]
    flush()
    return story


def write_pdf_bytes(buf, name, document, assessment, breakdown):
    """
    Write the generated brief as a PDF to a bytes buffer.

    1. Title with project name and risk posture.
    2. Score contributions table.
    3. The generated document.

    Args:
        buf (BytesIO): buffer to write to
        name (str): project display name
        document (str): generated AGENTS.md text
        assessment (RiskAssessment): score and level
        breakdown (pd.DataFrame): output of `scoring.score_breakdown`
    """
    doc = SimpleDocTemplate(
        buf, pagesize=A4, leftMargin=16, rightMargin=16, topMargin=16, bottomMargin=16
    )
    styles = getSampleStyleSheet()
    label = RISK_LABELS[assessment.level]
    story = [
        Paragraph(f"<b>AGENTS.md · {escape(name)}</b>", styles["Title"]),
        Spacer(1, 8),
        Paragraph(
            f"<b>Risk posture:</b> {escape(label['title'])} ({assessment.score}/8)",
            styles["Heading3"],
        ),
        Paragraph(escape(label["blurb"]), styles["Normal"]),
        Spacer(1, 10),
    ]

    tbl_data = [["Factor", "Answer", "Points"]] + [
        [row.factor, row.answer, f"{int(row.points):+d}"]
        for row in breakdown.itertuples(index=False)
    ]
    avail = A4[0] - 72
    tbl = Table(tbl_data, colWidths=[140, avail - 200, 60], hAlign="LEFT")
    tbl.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e9ebf3")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#0b1020")),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
                ("TOPPADDING", (0, 0), (-1, 0), 6),
            ]
        )
    )
    story += [
        Paragraph("<b>Score contributions</b>", styles["Heading3"]),
        Spacer(1, 6),
        tbl,
        Spacer(1, 12),
    ]
    story += _markdown_story(document, styles)
    doc.build(story)
