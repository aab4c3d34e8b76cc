"""Prompt text for the LLM calls: extraction, question generation, answer patches, scoring, finalization."""

import json
from typing import Any, Dict, List

from cv_builder_ai.config import SUPPORTED_LANGUAGES
from cv_builder_ai.schemas.cv_record import CvRecord

CV_EXTRACTION_SYSTEM_PROMPT = """You are a CV/resume data extraction system.
Parse the raw CV text into one JSON object that follows the template exactly.
- Extract only information clearly present in the text. Do not rewrite, invent or enhance anything.
- Two or three consecutive ALL CAPS words at the start of the document are usually the full name.
- Every experience entry needs position and company; every education entry needs degree and institution.
- Put technical skills in skills.hard and interpersonal skills in skills.soft.
- Normalize dates to YYYY-MM (or YYYY if the month is unknown); use "Present" for current positions.
- If a section is not present, leave it empty ("" or []).
Return only the JSON object, no markdown, no explanations."""

QUESTIONS_SYSTEM_PROMPT = """You are a senior career coach improving a CV through short questions.
Analyze the CV JSON and ask about the highest-impact gaps: missing sections, quantifiable
achievements (numbers, percentages, team sizes), skill levels and certifications, leadership,
career objectives, and obvious typos in company names, technologies or places.
Rules:
- Write every question in {language}. Do not use any other language.
- Never ask for information that is already present in the CV.
- Never repeat or rephrase a question from the already-asked list.
- Each question addresses a different section.
- Ask at most {max_count} questions. Return an empty list if nothing important is missing.
Return one JSON object:
{{"questions": [{{"id": "q1", "question": "...", "category": "achievements|technical|leadership|growth|industry|typo_correction", "hint": "...", "isMultipleChoice": false, "choices": []}}]}}
Only include choices (2-3 options) when isMultipleChoice is true."""

PATCH_SYSTEM_PROMPT = """You turn a user's answer to a CV question into targeted CV updates.
Given the CV JSON, the question and the answer, propose the smallest set of changes.
Each change has a dot path and a value:
- list sections (experience, education, certifications, projects, languages): the value is ONE new
  item object (or an array of new items); existing items cannot be edited this way
- skills.hard / skills.soft: a string or list of strings to add
- summary, personal.<field>, target.<field>: the new value
Use the same language as the answer. Do not invent facts the answer does not contain.
Return one JSON object: {"changes": [{"path": "languages", "value": {"language": "English", "proficiency": "Advanced"}}]}
Return {"changes": []} when the answer contains nothing structured."""

SCORE_SYSTEM_PROMPT = """You are a senior recruiting manager reviewing this CV for a competitive role.
Weighted criteria: impact and quantified achievements (30%), technical competency (25%),
career progression (20%), market relevance (15%), presentation quality (10%).
Scale: 90-100 outstanding, 80-89 strong, 70-79 good with gaps, 60-69 significant gaps, below 60 major rework.
Focus on actionable improvements first, then weaknesses, and only briefly on strengths.
Write all feedback in {language}.
Return one JSON object:
{{"overall": 0-100, "breakdown": {{"impact": 0-100, "technical": 0-100, "progression": 0-100, "relevance": 0-100, "presentation": 0-100}}, "strengths": ["..."], "weaknesses": ["..."], "suggestions": ["..."]}}"""

FINALIZE_SYSTEM_PROMPT = """You are a master CV writer. Polish the CV JSON into a professional final CV.
- Every string value (summary, descriptions, achievements, titles) MUST be written in {language}.
- Start experience descriptions and achievements with strong action verbs; keep them concise.
- Integrate the facts from the userAdditions question/answer pairs into the right sections,
  including quantified achievements the user provided.
- Write a strong summary from the candidate's best skills and experience.
- Do not invent employers, degrees, dates or certifications. Keep every existing entry.
- Keep exactly the same JSON structure and keys as the input.
Return only the JSON object."""


def language_name(code: str) -> str:
    """Display name for a language code; unknown codes are passed through."""
    return SUPPORTED_LANGUAGES.get((code or "").strip().lower(), code or "English")


def record_template() -> Dict[str, Any]:
    """Empty CV skeleton with one example item per list section, sent with extraction."""
    template = CvRecord().to_wire()
    template.pop("userAdditions", None)
    template["personal"]["links"] = ["string"]
    template["experience"] = [
        {"position": "", "company": "", "location": "", "startDate": "", "endDate": "", "description": "", "achievements": []}
    ]
    template["education"] = [
        {"degree": "", "institution": "", "location": "", "startDate": "", "endDate": "", "gpa": ""}
    ]
    template["certifications"] = [{"name": "", "issuer": "", "date": "", "url": ""}]
    template["projects"] = [{"name": "", "summary": "", "technologies": [], "link": ""}]
    template["languages"] = [{"language": "", "proficiency": ""}]
    return template


def build_extraction_messages(cv_text: str, template: Dict[str, Any]) -> List[Dict[str, str]]:
    user = f"Template to follow:\n{json.dumps(template)}\n\nRaw CV text:\n---\n{cv_text}\n---"
    return [
        {"role": "system", "content": CV_EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def build_questions_messages(
    record: Dict[str, Any],
    asked: List[str],
    language: str,
    max_count: int,
    missing: List[str],
) -> List[Dict[str, str]]:
    system = QUESTIONS_SYSTEM_PROMPT.format(language=language_name(language), max_count=max_count)
    user = (
        f"CV data:\n{json.dumps(record, ensure_ascii=False)}\n\n"
        f"Sections still empty: {', '.join(missing) if missing else 'none'}\n\n"
        f"Already asked (do not repeat):\n{json.dumps(asked, ensure_ascii=False)}"
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def build_patch_messages(record: Dict[str, Any], question: str, answer: str) -> List[Dict[str, str]]:
    user = (
        f"CV data:\n{json.dumps(record, ensure_ascii=False)}\n\n"
        f"Question: {question}\nAnswer: {answer}"
    )
    return [
        {"role": "system", "content": PATCH_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def build_score_messages(record: Dict[str, Any], language: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SCORE_SYSTEM_PROMPT.format(language=language_name(language))},
        {"role": "user", "content": f"Evaluate this CV:\n{json.dumps(record, ensure_ascii=False, indent=2)}"},
    ]


def build_finalize_messages(record: Dict[str, Any], language: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": FINALIZE_SYSTEM_PROMPT.format(language=language_name(language))},
        {"role": "user", "content": f"CV data to finalize:\n{json.dumps(record, ensure_ascii=False)}"},
    ]
