"""Rewrite prompts for ingested content.

The "AI corrections" prompt and the named formatting templates share the
same building blocks. Every prompt asks for minimal, fidelity-preserving
edits and plain text output.
"""

import re

from pydantic import BaseModel

from shared.models.draft import ContentFormat

CONTENT_START_MARKER = "<<<CONTENT>>>"
CONTENT_END_MARKER = "<<<END>>>"

_CODE_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\n?([\s\S]*?)\n?```\s*$")

BASE_RULES = " ".join([
    "Output only the revised transcript text. Do not include commentary, explanations, code fences, JSON, or wrappers.",
    "Do not summarize, paraphrase, rewrite, or change meaning.",
    "Do not reorder content.",
    "Do not add or remove non-whitespace characters unless explicitly allowed by the template.",
    "Speaker labels and timestamps are immutable tokens: do not change them in any way (spelling, casing, punctuation, spacing, or format). Copy them exactly as provided.",
    "Treat the following as immutable tokens and copy them exactly as provided: bracketed tags (e.g., [laughter], [crosstalk], [inaudible]), parenthetical stage directions (e.g., (laughs), (phone rings)), inline metadata markers, URLs, email addresses, file paths, and anything that looks like code/config (e.g., JSON, YAML, CLI flags).",
    "If a change is not clearly justified as a transcription punctuation/casing/spacing fix in spoken text, leave it unchanged.",
])

SPOKEN_TEXT_ONLY_RULE = " ".join([
    "Only edit spoken text segments.",
    "Spoken text excludes: speaker labels, timestamps, bracketed tags, parenthetical stage directions, URLs/emails, file paths, and code/config blocks.",
])

PRESERVE_LINE_STRUCTURE_RULE = "Do not change line breaks, and do not merge or split lines."

ALLOW_SPEAKER_TURN_LINE_BREAKS_RULE = " ".join([
    "You may insert or remove line breaks only to ensure each speaker turn is on its own line.",
    "Only split immediately before an existing speaker label/timestamp that already appears in the text.",
    "Do not move any words, tags, or punctuation across speaker turns.",
])

ALLOW_HEADINGS_RULE = " ".join([
    "You may insert neutral Markdown headings (lines starting with #) to group sections.",
    "Headings must be short and non-interpretive (e.g., 'Introductions', 'Pricing', 'Q&A', '00:10-00:18').",
    "Place headings only between existing lines (never inside a speaker line).",
    "Do not modify existing transcript text; headings and surrounding blank lines are additive only.",
])

WHITESPACE_ALLOWANCE_FOR_HEADINGS = (
    "Whitespace-only changes (adding/removing blank lines) are allowed only as needed to place headings cleanly."
)


class RewritePrompt(BaseModel):
    system: str
    instruction: str


class RewriteTemplate(BaseModel):
    """
    A named formatting template. output_format becomes the draft's content format.
    """
    id: str
    label: str
    description: str
    output_format: ContentFormat
    system_prompt: str
    instruction: str


AI_CORRECTION_LABEL = "AI corrections"
TEMPLATE_LABEL = "Template formatting"

AI_CORRECTION_PROMPT = RewritePrompt(
    system=" ".join([
        "You are a transcription editor performing minimal, high-precision corrections.",
        "Fix only obvious transcription errors plus punctuation, capitalization, and spacing in spoken text.",
        "Do not rewrite for style or clarity; do not remove filler; do not expand/contract words unless clearly an error.",
        SPOKEN_TEXT_ONLY_RULE,
        PRESERVE_LINE_STRUCTURE_RULE,
        BASE_RULES,
    ]),
    instruction="Correct the transcript below.",
)

REWRITE_TEMPLATES: list[RewriteTemplate] = [
    RewriteTemplate(
        id="transcript_clean",
        label="Clean transcript",
        description="Normalize punctuation and casing while preserving line structure.",
        output_format=ContentFormat.PLAIN,
        system_prompt=" ".join([
            "You format transcripts for readability with minimal edits.",
            "Normalize punctuation and casing in spoken text only.",
            SPOKEN_TEXT_ONLY_RULE,
            PRESERVE_LINE_STRUCTURE_RULE,
            BASE_RULES,
        ]),
        instruction="Format the transcript below using clean, readable text.",
    ),
    RewriteTemplate(
        id="speaker_turns",
        label="Speaker turns",
        description="Ensure each speaker turn is on its own line with clear labels.",
        output_format=ContentFormat.PLAIN,
        system_prompt=" ".join([
            "You format transcripts into clean speaker turns.",
            "Ensure each speaker turn is on its own line.",
            SPOKEN_TEXT_ONLY_RULE,
            ALLOW_SPEAKER_TURN_LINE_BREAKS_RULE,
            BASE_RULES,
        ]),
        instruction="Format the transcript below into clear speaker turns.",
    ),
    RewriteTemplate(
        id="chapter_headings",
        label="Chapter headings",
        description="Insert Markdown headings to group topics without removing content.",
        output_format=ContentFormat.MARKDOWN,
        system_prompt=" ".join([
            "You add light structure to transcripts by inserting short, neutral Markdown headings.",
            ALLOW_HEADINGS_RULE,
            WHITESPACE_ALLOWANCE_FOR_HEADINGS,
            SPOKEN_TEXT_ONLY_RULE,
            BASE_RULES,
        ]),
        instruction="Add Markdown headings to the transcript below.",
    ),
]


def get_template(template_id: str) -> RewriteTemplate | None:
    return next((t for t in REWRITE_TEMPLATES if t.id == template_id), None)


def wrap_draft_for_prompt(content: str, instruction: str) -> str:
    return f"{instruction}\n\n{CONTENT_START_MARKER}\n{content}\n{CONTENT_END_MARKER}"


def strip_code_fences(value: str | None) -> str:
    """Remove a code fence wrapping the whole text. Fences inside the text are kept."""
    text = (value or "").strip()
    match = _CODE_FENCE.match(text)
    return match.group(1).strip() if match else text
