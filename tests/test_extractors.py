import io

import pytest
from docx import Document

import extractors
from errors import ExtractionFailure, InvalidInput
from extractors import extract_text


def _docx_bytes():
    doc = Document()
    doc.add_paragraph("The licensee may install the software on one device.")
    doc.add_paragraph("   ")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Term"
    table.rows[0].cells[1].text = "Twelve months"
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def test_txt():
    assert extract_text("terms.TXT", "Plain terms – with unicode".encode("utf-8")) == "Plain terms – with unicode"


def test_docx_paragraphs_and_tables():
    text = extract_text("eula.docx", _docx_bytes())
    assert text.splitlines() == [
        "The licensee may install the software on one device.",
        "Term",
        "Twelve months",
    ]


def test_unsupported_type():
    with pytest.raises(InvalidInput) as exc:
        extract_text("setup.exe", b"MZ")
    assert ".exe" in exc.value.message


def test_file_too_large(monkeypatch):
    monkeypatch.setattr(extractors, "MAX_UPLOAD_BYTES", 10)
    with pytest.raises(InvalidInput):
        extract_text("terms.txt", b"x" * 11)


@pytest.mark.parametrize("filename", ["broken.pdf", "broken.docx"])
def test_corrupted_files(filename):
    with pytest.raises(ExtractionFailure):
        extract_text(filename, b"this is not a real document")
