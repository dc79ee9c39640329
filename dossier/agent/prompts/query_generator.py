"""Prompts for general-phase query generation and iterative-mode query rewriting."""

GENERAL_QUERIES_PROMPT = """\
Propose {count} web search queries that would surface more information about
{subject_name}, one per topic: education, work history, publications, social
presence, mentions or interviews.

Hard context: {hard_context}
Soft context: {soft_context}
Already established: {generated_context}

Use the established facts (employer, school, usernames) to make each query
specific to this person rather than to namesakes.

Respond with ONLY this JSON object:
{{"queries": [{{"query": "...", "target": "education"}}]}}
"""

QUERY_OPTIMIZER_PROMPT = """\
Rewrite this search query so a web search engine returns pages about the
specific person below and not their namesakes.

Person: {subject_name}
Known context: {hard_context}
Query type: {query_type}
Original query: {query}

Keep it under 20 words. Prefer distinctive terms (employer, field, location)
over generic ones.

Respond with ONLY this JSON object:
{{"optimizedQuery": "...", "reasoning": "...", "searchStrategy": "..."}}
"""
