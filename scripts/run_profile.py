"""CLI runner: search one subject end to end and print the resulting profile as JSON."""

from __future__ import annotations

import argparse
import asyncio
import sys

from pydantic import ValidationError

from dossier.agent.graph import SearchDependencies
from dossier.agent.tools.tavily_search import TavilySearchBackend
from dossier.config import get_settings
from dossier.graph_db.connection import Neo4jConnection
from dossier.models.llm_registry import LLMRegistry
from dossier.models.model_router import ModelRouter
from dossier.models.schemas import Subject
from dossier.services.profile_assembler import ProfileAssembler
from dossier.services.profile_repository import ProfileRepository
from dossier.services.profile_service import ProfileService
from dossier.services.session_registry import SessionRegistry
from dossier.services.session_store import InMemorySessionStore
from dossier.utils.exceptions import SearchPhaseError
from dossier.utils.logging import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build an OSINT profile for one person.")
    parser.add_argument("name", help='Full name, e.g. "Jane Doe"')
    parser.add_argument("--hard", default="", help="Facts known to be true")
    parser.add_argument("--soft", default="", help="Plausible but unconfirmed facts")
    parser.add_argument("--mode", choices=["legacy", "revamped"], default=None)
    parser.add_argument("--save", action="store_true", help="Persist the profile to Neo4j")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, log_format="console")

    try:
        subject = Subject(name=args.name, hard_context=args.hard, soft_context=args.soft)
    except ValidationError:
        print(f"Invalid name {args.name!r}: a first and last name are required", file=sys.stderr)
        return 2

    router = ModelRouter(LLMRegistry(settings))
    assembler = ProfileAssembler(router=router, settings=settings)
    conn = Neo4jConnection(settings)
    service = ProfileService(
        settings,
        SearchDependencies.build(settings, router, TavilySearchBackend(settings)),
        assembler,
        ProfileRepository(conn),
        SessionRegistry(InMemorySessionStore(), settings),
    )

    try:
        if args.save:
            await conn.connect()
            profile = await service.create_profile(subject, args.mode)
        else:
            profile = await assembler.assemble(await service.run_search(subject, args.mode))
    except SearchPhaseError as exc:
        print(f"Search failed: {exc}", file=sys.stderr)
        if exc.partial_log is not None:
            print(exc.partial_log.model_dump_json(indent=2))
        return 1
    finally:
        await conn.close()

    print(profile.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
