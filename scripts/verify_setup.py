"""Verify infrastructure components and API keys before running searches."""

from __future__ import annotations

import asyncio
import sys

import httpx
from redis.asyncio import from_url

from dossier.config import Settings, get_settings
from dossier.graph_db.connection import Neo4jConnection
from dossier.models.llm_registry import FALLBACK_CHAINS, MODEL_CONFIG


async def check_neo4j(settings: Settings) -> bool:
    conn = Neo4jConnection(settings)
    try:
        await conn.connect()
        print("[OK] Neo4j connection successful")
        return True
    except Exception as exc:
        print(f"[FAIL] Neo4j: {exc}")
        return False
    finally:
        await conn.close()


async def check_redis(settings: Settings) -> bool:
    client = from_url(settings.REDIS_URL)
    try:
        assert await client.ping() is True
        print("[OK] Redis connection successful")
        return True
    except Exception as exc:
        print(f"[WARN] Redis: {exc} (sessions will not survive a restart)")
        return False
    finally:
        await client.aclose()


async def check_openrouter(settings: Settings) -> bool:
    if not settings.OPENROUTER_API_KEY:
        print("[FAIL] OpenRouter: OPENROUTER_API_KEY not set")
        return False
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                f"{settings.OPENROUTER_BASE_URL.rstrip('/')}/models",
                headers={"Authorization": f"Bearer {settings.OPENROUTER_API_KEY}"},
                timeout=15,
            )
            resp.raise_for_status()
            available = {m["id"] for m in resp.json().get("data", [])}
        needed = sorted(
            {spec.slug for spec in MODEL_CONFIG.values()}
            | {slug for chain in FALLBACK_CHAINS.values() for slug in chain}
        )
        for slug in needed:
            found = slug in available
            print(f"  [{'OK' if found else 'WARN'}] Model {slug}: {'available' if found else 'not found'}")
        print("[OK] OpenRouter API accessible")
        return True
    except Exception as exc:
        print(f"[FAIL] OpenRouter: {exc}")
        return False


async def check_tavily(settings: Settings) -> bool:
    if not settings.TAVILY_API_KEY:
        print("[FAIL] Tavily: TAVILY_API_KEY not set")
        return False
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                "https://api.tavily.com/search",
                json={"api_key": settings.TAVILY_API_KEY, "query": "test", "max_results": 1},
                timeout=15,
            )
            resp.raise_for_status()
        print("[OK] Tavily search API working")
        return True
    except Exception as exc:
        print(f"[FAIL] Tavily: {exc}")
        return False


async def main() -> None:
    settings = get_settings()
    print("=" * 50)
    print("Dossier - Infrastructure Verification")
    print("=" * 50)

    results = await asyncio.gather(
        check_neo4j(settings),
        check_redis(settings),
        check_openrouter(settings),
        check_tavily(settings),
    )

    print("=" * 50)
    print(f"Results: {sum(results)}/{len(results)} checks passed")
    if not all(results):
        print("Some checks failed. Review output above.")
        sys.exit(1)
    print("All systems operational.")


if __name__ == "__main__":
    asyncio.run(main())
