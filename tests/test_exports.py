"""
Export tests
"""

import io

from exports import export_filename, write_pdf_bytes
from models import Questionnaire
from scoring import assess, score_breakdown


def test_export_filename():
    assert export_filename("My Thesis & Data", "md") == "AGENTS-my-thesis---data.md"
    assert export_filename("!!!", "pdf") == "AGENTS-project.pdf"


def test_pdf_bytes():
    q = Questionnaire(project_name="Gradebook <beta>", compliance=["FERPA"])
    document = "\n".join(
        [
            "# AGENTS: Project brief & safety rules",
            "",
            "## Refusal Rules",
            "- Refuse to read `.env` & <secrets>",
            "- Refuse to guess tokens",
            "",
            "> Treat AI as read-only until vetted.",
            "Plain paragraph.",
        ]
    )
    buf = io.BytesIO()
    write_pdf_bytes(buf, q.display_name, document, assess(q), score_breakdown(q))
    data = buf.getvalue()
    assert data.startswith(b"%PDF")
    assert len(data) > 1000
