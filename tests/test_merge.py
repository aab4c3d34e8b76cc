import pytest

from cv_builder_ai.cv_pipeline.merge import (
    PathUpdate,
    apply_path_update,
    diff_records,
    keep_protected_fields,
    merge,
    replace_section,
)
from cv_builder_ai.cv_pipeline.record_model import validate_record
from cv_builder_ai.errors import RecordValidationError


@pytest.fixture
def base():
    return validate_record(
        {
            "personal": {"name": "Jane Doe", "email": "jane@example.com", "links": ["https://github.com/jane"]},
            "summary": "Backend engineer.",
            "experience": [
                {"position": "eng ", "company": " ACME"},
                {"position": "Intern", "company": "Globex"},
            ],
            "skills": {"hard": ["Python"], "soft": ["Teamwork"]},
            "languages": [{"language": "English", "proficiency": "Advanced"}],
        }
    )


def test_duplicate_language_keeps_first(base):
    merged = apply_path_update(base, PathUpdate(path="languages", value={"language": "English", "proficiency": "Native"}))
    assert [(l.language, l.proficiency) for l in merged.languages] == [("English", "Advanced")]


def test_empty_section_is_created_through_legacy_name(base):
    merged = apply_path_update(base, PathUpdate(path="certificates", value=[{"name": "AWS SAA"}]))
    assert [c.name for c in merged.certifications] == ["AWS SAA"]


def test_identity_match_ignores_case_and_whitespace(base):
    merged = merge(base, {"experience": [{"position": "Eng", "company": "Acme"}]})
    assert len(merged.experience) == 2
    assert merged.experience[0].position == "eng"


def test_new_items_append_after_base_in_order(base):
    merged = merge(
        base,
        {
            "experience": [
                {"position": "CTO", "company": "Initech"},
                {"position": "Intern", "company": "Globex"},
                {"position": "Advisor", "company": "Umbrella"},
            ]
        },
    )
    assert [e.company for e in merged.experience] == ["ACME", "Globex", "Initech", "Umbrella"]


def test_merge_is_idempotent(base):
    patch = {
        "experience": [{"position": "CTO", "company": "Initech"}],
        "skills": {"hard": ["Go", "python"]},
        "userAdditions": [],
        "summary": "Staff engineer.",
    }
    once = merge(base, patch)
    assert merge(once, patch) == once


def test_empty_summary_and_name_do_not_erase(base):
    merged = merge(base, {"summary": "", "personal": {"name": "", "phone": "555"}})
    assert merged.summary == "Backend engineer."
    assert merged.personal.name == "Jane Doe"
    assert merged.personal.phone == "555"


def test_absent_fields_are_untouched(base):
    merged = merge(base, {"target": {"role": "Staff Engineer"}})
    assert merged.target.role == "Staff Engineer"
    assert merged.experience == base.experience
    assert merged.summary == base.summary


def test_skills_union_keeps_first_spelling(base):
    merged = merge(base, {"skills": {"hard": ["PYTHON", "Go"], "soft": ["Mentoring"]}})
    assert merged.skills.hard == ["Python", "Go"]
    assert merged.skills.soft == ["Teamwork", "Mentoring"]


def test_user_additions_append(base):
    once = merge(base, {"userAdditions": [{"question": "Q?", "answer": "A"}]})
    twice = merge(once, {"userAdditions": [{"question": "Q?", "answer": "A"}]})
    assert len(once.user_additions) == 1
    assert len(twice.user_additions) == 2


def test_merge_never_mutates_base(base):
    before = base.to_wire()
    merge(base, {"languages": [{"language": "German"}], "summary": "New"})
    assert base.to_wire() == before


def test_invalid_patch_item_raises(base):
    with pytest.raises(RecordValidationError) as exc:
        merge(base, {"education": [{"degree": "MSc"}]})
    assert exc.value.paths == ["education.0.institution"]


def test_nested_path_update(base):
    merged = apply_path_update(base, PathUpdate(path="personal.phone", value="555-0100"))
    assert merged.personal.phone == "555-0100"
    merged = apply_path_update(merged, PathUpdate(path="skills.hard", value="Kubernetes, Go"))
    assert merged.skills.hard == ["Python", "Kubernetes", "Go"]


@pytest.mark.parametrize(
    "path,value",
    [
        ("hobbies", ["chess"]),
        ("experience.0.company", "Acme"),
        ("personal.name.first", "Jane"),
        ("languages", "English"),
        ("personal.nickname", "JD"),
    ],
)
def test_unsupported_paths_raise(base, path, value):
    with pytest.raises(RecordValidationError):
        apply_path_update(base, PathUpdate(path=path, value=value))


def test_replace_section_edits_existing_items(base):
    edited = replace_section(base, "languages", [{"language": "English", "proficiency": "Native"}])
    assert edited.languages[0].proficiency == "Native"
    assert edited.experience == base.experience


def test_replace_section_keeps_summary(base):
    assert replace_section(base, "summary", "").summary == "Backend engineer."


def test_keep_protected_fields(base):
    candidate = validate_record({"personal": {"email": "new@example.com"}})
    kept = keep_protected_fields(base, candidate)
    assert kept.personal.name == "Jane Doe"
    assert kept.personal.email == "new@example.com"
    assert kept.summary == "Backend engineer."


def test_diff_records(base):
    new = merge(base, {"summary": "Staff engineer.", "languages": [{"language": "German"}]})
    changes = {c.path: c for c in diff_records(base, new)}
    assert changes["summary"].change == "modified"
    assert changes["summary"].old_value == "Backend engineer."
    assert changes["languages[1].language"].change == "added"
    assert diff_records(base, base) == []
