from io import BytesIO

from docx import Document

from cv_builder_ai.cv_pipeline.text_extractor import clean_cv_text, extract_text_from_file


def test_txt_upload():
    text = extract_text_from_file("Jane Doe\n\n\n\nEngineer   at  Acme".encode("utf-8"), "cv.TXT")
    assert text == "Jane Doe\n\nEngineer at Acme"


def test_docx_upload_includes_tables():
    doc = Document()
    doc.add_paragraph("Jane Doe")
    table = doc.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "Python"
    table.cell(0, 1).text = "SQL"
    buf = BytesIO()
    doc.save(buf)

    text = extract_text_from_file(buf.getvalue(), "cv.docx")
    assert "Jane Doe" in text
    assert "Python" in text and "SQL" in text


def test_unsupported_or_empty_upload():
    assert extract_text_from_file(b"data", "cv.odt") is None
    assert extract_text_from_file(b"", "cv.txt") is None


def test_clean_cv_text_truncates():
    assert clean_cv_text("a" * 20, max_chars=10).startswith("a" * 10 + "\n\n[Content truncated.]")
    assert clean_cv_text("   ") == ""
