"""Prompt for summarising the winning source of a platform phase."""

SUMMARIZER_PROMPT = """\
Summarize what this {platform} page says about {subject_name} in 1-2 factual sentences.
Only state facts present in the content. No speculation, no filler.

<content>
{content}
</content>

Respond with ONLY this JSON object:
{{"summary": "..."}}
"""
