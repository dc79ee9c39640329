"""Source validation prompt: scores one candidate against the subject."""

VALIDATOR_PROMPT = """\
Validate whether this source is about "{subject_name}".

## Subject

<subject>
Name: {subject_name}
Hard context (certainly true, must not be contradicted): {hard_context}
Soft context (plausible guidance, not required): {soft_context}
Already established during this search: {generated_context}
</subject>

## Source

<source>
URL: {url}
Title: {title}
Content: {content}
</source>

## Scoring rubric

Each tier requires strictly more corroborating evidence than the one below it.

- 1-3: the name matches but nothing else does, or the source conflicts with the hard context.
- 4-5: name plus some context (location, school, a generic interest).
- 6-8: name plus professional background consistent with the hard context (employer, role, field).
- 9-10: name, professional background, AND multiple independent context points.

Set isLikelyMatch to true only when the evidence points to the same person.
Use "high" confidence only when the evidence is specific and uncontradicted.

Respond with ONLY this JSON object:
{{
  "relevancyScore": 7,
  "isLikelyMatch": true,
  "confidence": "high",
  "reasoning": "Brief explanation",
  "samePersonElements": ["element1", "element2"],
  "differentPersonElements": ["element1"]
}}
"""
