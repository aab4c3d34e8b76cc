import pytest

from cv_builder_ai.cv_pipeline.record_model import missing_sections, validate_record
from cv_builder_ai.errors import RecordValidationError
from cv_builder_ai.schemas.cv_record import CvRecord


def test_empty_input_gives_total_record():
    record = validate_record({})
    assert record == CvRecord()
    assert record.summary == ""
    assert record.skills.hard == [] and record.skills.soft == []
    assert record.experience == []
    assert record.user_additions == []


def test_none_gives_empty_record():
    assert validate_record(None) == CvRecord()


def test_legacy_skills_list_becomes_hard_skills():
    record = validate_record({"skills": ["Python", "SQL"]})
    assert record.skills.hard == ["Python", "SQL"]
    assert record.skills.soft == []


def test_legacy_skill_objects_use_name():
    record = validate_record({"skills": [{"name": "Go", "level": "expert"}, {"name": "Rust"}]})
    assert record.skills.hard == ["Go", "Rust"]


def test_unknown_keys_are_dropped():
    record = validate_record({"summary": "Hi", "favouriteColour": "blue"})
    assert "favouriteColour" not in record.to_wire()
    assert record.summary == "Hi"


def test_experience_without_company_is_rejected_with_path():
    with pytest.raises(RecordValidationError) as exc:
        validate_record({"experience": [{"position": "Engineer"}]})
    assert "experience.0.company" in exc.value.paths


def test_blank_identity_field_is_rejected():
    with pytest.raises(RecordValidationError) as exc:
        validate_record({"education": [{"degree": "  ", "institution": "MIT"}]})
    assert "education.0.degree" in exc.value.paths


def test_non_object_is_rejected():
    with pytest.raises(RecordValidationError):
        validate_record(["not", "a", "record"])


def test_legacy_wizard_shapes():
    record = validate_record(
        {
            "personalInfo": {"name": "Ada", "email": "ada@example.com"},
            "experience": [{"title": "Engineer", "company": "Acme", "start": "2020", "bullets": ["Shipped v2"]}],
            "certificates": ["AWS SAA", None],
            "projects": [{"name": "cvgen", "description": "CLI tool", "url": "https://example.com"}],
        }
    )
    assert record.personal.name == "Ada"
    exp = record.experience[0]
    assert (exp.position, exp.start_date, exp.achievements) == ("Engineer", "2020", ["Shipped v2"])
    assert [c.name for c in record.certifications] == ["AWS SAA"]
    assert record.projects[0].summary == "CLI tool"
    assert record.projects[0].link == "https://example.com"


def test_numbers_are_stringified_and_strings_trimmed():
    record = validate_record({"education": [{"degree": " BSc ", "institution": "MIT", "gpa": 3.8}]})
    assert record.education[0].degree == "BSc"
    assert record.education[0].gpa == "3.8"


def test_duplicate_identities_keep_first():
    record = validate_record(
        {
            "experience": [
                {"position": "Engineer", "company": "Acme", "description": "first"},
                {"position": "engineer ", "company": "ACME", "description": "second"},
            ]
        }
    )
    assert len(record.experience) == 1
    assert record.experience[0].description == "first"


def test_wire_shape_uses_camel_case():
    wire = validate_record({"experience": [{"position": "A", "company": "B", "startDate": "2020"}]}).to_wire()
    assert wire["experience"][0]["startDate"] == "2020"
    assert "userAdditions" in wire


def test_missing_sections_in_tracked_order():
    record = validate_record({"personal": {"name": "Ada"}, "skills": {"soft": ["Teamwork"]}})
    missing = missing_sections(record)
    assert missing[0] == "personal.email"
    assert "personal.name" not in missing
    assert "skills" not in missing
    assert missing[-1] == "target.role"
