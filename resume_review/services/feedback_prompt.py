from __future__ import annotations

import json

FEEDBACK_RESPONSE_FORMAT = {
    "overallScore": "number 0-100",
    "ATS": {
        "score": "number 0-100",
        "tips": [{"type": "good | improve", "tip": "3-6 word title"}],
    },
    "toneAndStyle": {
        "score": "number 0-100",
        "tips": [
            {
                "type": "good | improve",
                "tip": "3-6 word title",
                "explanation": "detailed explanation",
            }
        ],
    },
    "content": {"score": "number 0-100", "tips": ["same shape as toneAndStyle.tips"]},
    "structure": {"score": "number 0-100", "tips": ["same shape as toneAndStyle.tips"]},
    "skills": {"score": "number 0-100", "tips": ["same shape as toneAndStyle.tips"]},
}


def _line(label: str, value: str | None) -> str:
    cleaned = (value or "").strip()
    return f"{label}: {cleaned or 'not provided'}"


def build_feedback_prompt(
    *,
    job_title: str | None = None,
    job_description: str | None = None,
    company_name: str | None = None,
) -> str:
    """Instructions sent alongside the resume document."""
    response_format = json.dumps(FEEDBACK_RESPONSE_FORMAT, indent=2)
    return "\n".join(
        [
            "You are an expert in ATS (Applicant Tracking System) and resume analysis.",
            "Analyze and rate the attached resume and suggest how to improve it.",
            "Be thorough and honest: if the resume is weak, give low scores.",
            "Give 3-4 tips per section. Use the job context below when it is provided.",
            _line("Company", company_name),
            _line("Job title", job_title),
            _line("Job description", job_description),
            "Respond with a single JSON object in exactly this format:",
            response_format,
            "Return the JSON object only, without backticks, comments or any other text.",
        ]
    )
