import csv
import io

import pytest
from docx import Document

from conftest import fake_summary
from exporters import export_csv, export_pdf, export_word
from pipeline import AnalysisPipeline, AnalysisRequest


@pytest.fixture
def report(nda_text):
    response = AnalysisPipeline(summarize=fake_summary).run(
        AnalysisRequest(message=nda_text, document_type="nda"))
    return response.to_dict()


def test_pdf(report):
    data = export_pdf(report)
    assert data.startswith(b"%PDF")


def test_word_contains_score_and_recommendations(report):
    doc = Document(io.BytesIO(export_word(report)))
    text = "\n".join(p.text for p in doc.paragraphs)
    assert f"{report['overall_score']}/100" in text
    for item in report["recommendations"]:
        assert item in text


def test_csv_sections(report):
    rows = list(csv.reader(io.StringIO(export_csv(report).decode("utf-8-sig"))))
    assert rows[0] == ["SECTION", "FIELD", "VALUE"]
    assert ["Score", "Overall Score", str(report["overall_score"])] in rows
    assert ["Confidentiality Terms", str(report["breakdown"]["confidentiality_terms"]["score"]),
            "20", "Scope and fairness of confidentiality obligations"] in rows
    severities = [r[0] for r in rows if r[1:] and r[1] == "perpetual"]
    assert severities == ["High"]
