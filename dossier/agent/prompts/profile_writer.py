"""Prompt for turning validated sources into aliases and a profile summary."""

PROFILE_WRITER_PROMPT = """\
Write the profile of {subject_name} from the validated sources below.

Hard context: {hard_context}
Soft context: {soft_context}
Established during the search: {generated_context}

<sources>
{sources}
</sources>

1. aliases: usernames or handles this person uses online (e.g. "jdoe", "jane_doe42"),
   taken from the source URLs or content. Lowercase. Empty list if none are evidenced.
2. profileSummary: 3-5 factual sentences. Only include what the sources support.

Respond with ONLY this JSON object:
{{"aliases": ["..."], "profileSummary": "..."}}
"""
