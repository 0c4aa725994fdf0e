"""Iconograph - biblical narrative art explorer

Simple CLI for running one query through the pipeline.
"""

import argparse
import asyncio

from app.agents.orchestrator import ArtQueryOrchestrator
from app.services.stats_tracker import get_stats_tracker


async def run_query(query: str, model: str | None = None):
    """Run the pipeline for the given query and print the survey."""
    print(f"Query: {query}")
    print("-" * 50)

    if query.strip():
        await get_stats_tracker().record(query.strip())
    orchestrator = ArtQueryOrchestrator(model=model)

    async for event in orchestrator.events(query):
        event_type = event.event.value
        data = event.data

        if event_type == "status":
            print(f"[~] {data.get('message', '')}")

        elif event_type == "results":
            results = data.get("results", {})
            print(f"\n[*] {results.get('narrativeTitle', '')}")
            print(f"\n{results.get('narrativeDescription', '')}")
            by_era = results.get("artworks", {}).get("byEra", {})
            for era, works in by_era.items():
                print(f"\n{'=' * 50}")
                print(f"{era} ({len(works)})")
                print(f"{'=' * 50}")
                for work in works:
                    print(f"- \"{work['title']}\" by {work['artist']} ({work['year']})")
                    print(f"  {work['imageUrl']}")

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}")


def main():
    parser = argparse.ArgumentParser(description="Iconograph biblical art explorer")
    parser.add_argument("--query", "-q", required=True, help="Narrative query")
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")

    args = parser.parse_args()

    asyncio.run(run_query(args.query, args.model))


if __name__ == "__main__":
    main()
