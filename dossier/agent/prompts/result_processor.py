"""Prompts for the iterative mode's context-match and point-extraction stages."""

CONTEXT_MATCH_SYSTEM_PROMPT = (
    "You are a STRICT context matching assistant. Answer true only when there is strong, "
    "specific evidence that the text describes the person in the provided context. "
    "Generic mentions or weak connections are false. Respond with ONLY valid JSON."
)

CONTEXT_MATCH_PROMPT = """\
Subject: {subject_name}
Hard context: {hard_context}
Generated context: {generated_context}

<text>
{text}
</text>
<summary>
{summary}
</summary>

Rules:
- The text must contain specific, detailed information that directly relates to the hard or generated context.
- A bare mention of the name is NOT sufficient.
- Vague or superficial connections are NOT acceptable.

Respond with ONLY this JSON object:
{{"match": true}}
"""

POINT_EXTRACTION_PROMPT = """\
Subject: {subject_name}
Hard context: {hard_context}
Generated context: {generated_context}

<text>
{text}
</text>
<summary>
{summary}
</summary>

Give exactly 3 specific, factual points on how this text relates {subject_name}
to the hard or generated context. No reasoning, just the points.

Respond with ONLY this JSON object:
{{"points": ["...", "...", "..."]}}
"""
