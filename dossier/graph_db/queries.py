"""Parameterized Cypher for profiles and their ordered sources."""

CREATE_PROFILE = """
CREATE (p:Profile)
SET p = $props
FOREACH (source IN $sources | CREATE (p)-[:HAS_SOURCE]->(s:Source) SET s = source)
RETURN p.id AS id
"""

GET_PROFILE = """
MATCH (p:Profile {id: $id})
OPTIONAL MATCH (p)-[:HAS_SOURCE]->(s:Source)
WITH p, s
ORDER BY s.position
RETURN p {.*} AS profile, collect(s {.*}) AS sources
"""

LIST_PROFILES = """
MATCH (p:Profile)
OPTIONAL MATCH (p)-[:HAS_SOURCE]->(s:Source)
WITH p, s
ORDER BY s.position
WITH p, collect(s {.*}) AS sources
RETURN p {.*} AS profile, sources
ORDER BY profile.created_at DESC
"""

DELETE_PROFILE = """
MATCH (p:Profile {id: $id})
OPTIONAL MATCH (p)-[:HAS_SOURCE]->(s:Source)
WITH p, p.id AS id, collect(s) AS sources
FOREACH (src IN sources | DETACH DELETE src)
DETACH DELETE p
RETURN id
"""
