#!/usr/bin/env python3
"""
Knowledge Graph State Engine - Command Line Entry Point

Loads the knowledge graph from the backend through the state engine,
optionally runs a concept search and selects a node, then prints a JSON
summary of the resulting state.
"""

import asyncio
import argparse
import json
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from kg_engine.config import settings
from kg_engine.query.orchestrator import QueryOrchestrator
from kg_engine.query.remote import HttpGraphDataProvider
from kg_engine.state.engine import GraphStateEngine
from kg_engine.types import GraphQueryParams
from kg_engine.utils.logger import app_logger, setup_logging


async def run(args) -> dict:
    """Drive the engine once and collect a summary."""
    async with HttpGraphDataProvider(base_url=args.base_url) as provider:
        engine = GraphStateEngine(QueryOrchestrator(provider))
        async with engine:
            await engine.load_graph(GraphQueryParams(node_type=args.node_type, limit=args.limit))

            if args.search:
                await engine.update_search_query(args.search)

            if args.select:
                await engine.select_node(args.select)

            report = engine.integrity_report
            return {
                "error": engine.error,
                "nodes": len(engine.filtered_nodes),
                "links": len(engine.visible_links),
                "integrity": report.to_dict() if report else None,
                "search_mode": engine.search_mode,
                "search_results": [node.to_dict() for node in engine.search_result_nodes],
                "selected_node": engine.selected_node.to_dict() if engine.selected_node else None,
                "selected_node_details": (
                    engine.selected_node_details.model_dump(by_alias=True)
                    if engine.selected_node_details else None
                ),
                "details_error": engine.details_error,
                "cache_hit_rate": engine.cache_hit_rate,
                "metrics": engine.orchestrator.metrics.to_dict(),
            }


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Knowledge Graph State Engine")
    parser.add_argument("--base-url", default=settings.api_base_url, help="Knowledge backend base URL")
    parser.add_argument("--node-type", default="ALL", help="Node type filter (CONCEPT, ARTICLE, NOTE, ALL)")
    parser.add_argument("--limit", type=int, default=settings.default_graph_limit, help="Maximum number of nodes")
    parser.add_argument("--search", help="Concept search query")
    parser.add_argument("--select", help="Id of the node to select")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level")

    args = parser.parse_args()
    setup_logging(args.log_level, settings.log_file)

    app_logger.info(f"Using knowledge backend at {args.base_url}")

    try:
        summary = asyncio.run(run(args))
    except KeyboardInterrupt:
        app_logger.info("Interrupted")
        sys.exit(130)

    print(json.dumps(summary, indent=2, ensure_ascii=False, default=str))
    if summary["error"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
