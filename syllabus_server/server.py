from __future__ import annotations

import json
import logging
import os
import re
import typing as t

import openai
import pydantic
from fastmcp import FastMCP
from openai import OpenAI

from prompts import load_prompt
from tracker.errors import CreditsExhaustedError, ExtractionError, RateLimitError
from .models import ExtractionRequest, ExtractionResponse
from .pdf_utils import read_syllabus_text

logger = logging.getLogger(__name__)

mcp = FastMCP("SyllabusServer")

DEFAULT_MODEL = os.getenv("TRACKER_EXTRACTION_MODEL", "gpt-4o-mini")

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?")


# -----------------------------
# SYSTEM PROMPT
# -----------------------------

SYSTEM_PROMPT = load_prompt("syllabus_extraction_system_prompt")


def get_openai_client() -> OpenAI:
    """Get OpenAI client with API key."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ExtractionError("AI service not configured: OPENAI_API_KEY is not set")
    return OpenAI(api_key=api_key)


def parse_extraction_content(content: str) -> ExtractionResponse:
    """Parse the model's reply, tolerating markdown code fences.

    :raises ExtractionError: If the content is not the expected JSON object.
    """
    clean = _FENCE_RE.sub("", content).replace("```", "").strip()
    try:
        data = json.loads(clean)
    except json.JSONDecodeError as e:
        logger.warning("Unparseable extraction reply: %.200s", content)
        raise ExtractionError("Failed to parse AI response") from e
    if not isinstance(data, dict):
        raise ExtractionError("Failed to parse AI response: expected a JSON object")
    try:
        return ExtractionResponse.model_validate({"assignments": data.get("assignments") or []})
    except pydantic.ValidationError as e:
        raise ExtractionError(f"Failed to parse AI response: {e.error_count()} invalid field(s)") from e


def extract_assignments(
    syllabus_text: str,
    course_code: str = "",
    course_title: str = "",
    client: t.Optional[OpenAI] = None,
    model: t.Optional[str] = None,
) -> ExtractionResponse:
    """Ask the model to list the assignments in a syllabus.

    :raises RateLimitError: If the AI service is rate limiting.
    :raises CreditsExhaustedError: If the AI account is out of credits.
    :raises ExtractionError: For any other failure, including empty input.
    """
    request = ExtractionRequest(
        syllabus_text=syllabus_text or "", course_code=course_code, course_title=course_title
    )
    if not request.syllabus_text.strip():
        raise ExtractionError("No syllabus text provided")

    client = client or get_openai_client()
    logger.info("Extracting assignments for %s (%d chars)", request.course_code, len(request.syllabus_text))

    user_prompt = (
        f"Course: {request.course_code} - {request.course_title}\n\n"
        f"Syllabus text:\n{request.syllabus_text}"
    )
    try:
        completion = client.chat.completions.create(
            model=model or DEFAULT_MODEL,
            response_format={"type": "json_object"},
            temperature=0.3,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
        )
    except openai.APIStatusError as e:
        if e.status_code == 402 or getattr(e, "code", None) == "insufficient_quota":
            raise CreditsExhaustedError(str(e)) from e
        if e.status_code == 429:
            raise RateLimitError(str(e)) from e
        raise ExtractionError(f"AI API error {e.status_code}") from e
    except openai.APIError as e:
        raise ExtractionError(f"Error calling AI service: {e}") from e

    content = completion.choices[0].message.content if completion.choices else None
    if not content:
        raise ExtractionError("No response from AI")

    response = parse_extraction_content(content)
    logger.info("Extracted %d assignments", len(response.assignments))
    return response


# -----------------------------
# MCP Tool Implementation
# -----------------------------

@mcp.tool()
def extract_syllabus_assignments(
        syllabus_text: str,
        course_code: str = "",
        course_title: str = "",
) -> ExtractionResponse:
    """Extract assignments (title, type, due date, time, weight, notes) from syllabus text.

    :param syllabus_text: The full text of the syllabus.
    :param course_code: Course code, e.g. "CSE 262".
    :param course_title: Course title, e.g. "Programming Languages".
    :return: The extracted assignments; an empty list means none were found.
    """
    return extract_assignments(syllabus_text, course_code, course_title)


@mcp.tool()
def read_syllabus(path_or_url: str) -> str:
    """Read the text of a syllabus PDF or text file from a path or URL."""
    return read_syllabus_text(path_or_url)


if __name__ == "__main__":
    # Run as an MCP server over stdio
    mcp.run()
