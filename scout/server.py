"""
Scout MCP Server.

Transport: stdio only.

Expected MCP Tool Return Format:
{
    "ok": bool,
    ...                     # Tool payload, present if ok is True
    "error": str,           # Present if ok is False
    "error_type": str,      # Present if ok is False
    "status": int           # HTTP-style status, present if ok is False
}
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Annotated, Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .common.config import load_config
from .common.errors import EmbeddingUnavailable, InvalidArgument, ScoutError
from .retriever.filters import build_filter
from .retriever.pipeline import ResearchPipeline, build_pipeline

logger = logging.getLogger("scout.server")


def error_response(exc: Exception) -> Dict[str, Any]:
    """Map an exception to a tool error payload with an HTTP-style status."""
    if isinstance(exc, InvalidArgument):
        status = 400
    elif isinstance(exc, EmbeddingUnavailable):
        status = 503
    else:
        status = 500

    if isinstance(exc, ScoutError):
        message = str(exc)
    else:
        message = "Internal server error"
    return {
        "ok": False,
        "error": message,
        "error_type": type(exc).__name__,
        "status": status,
    }


class ScoutServerApp:
    """
    MCP application exposing Scout retrieval and deep research.
    """

    def __init__(self, pipeline: ResearchPipeline, server_name: str = "scout") -> None:
        self.pipeline = pipeline
        self.mcp = FastMCP(name=server_name)

        # ---------- MCP Tools: Retrieve ---------- #
        @self.mcp.tool(
            name="retrieve",
            description=(
                "Single-pass semantic search over the product catalog. "
                "Returns the most similar items (highest similarity first), "
                "optionally with a short recommendation grounded in those items."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def tool_retrieve(
            query: Annotated[str, Field(description="natural language product query")],
            top_k: Annotated[Optional[int], Field(description="maximum number of results (defaults to config)")] = None,
            min_similarity: Annotated[Optional[float], Field(description="drop results scoring below this (defaults to config)")] = None,
            category: Annotated[Optional[str], Field(description="only items in this category, e.g. 'gaming'")] = None,
            tier: Annotated[Optional[str], Field(description="only items in this tier, e.g. 'budget'")] = None,
            min_price: Annotated[Optional[float], Field(description="minimum price (inclusive)")] = None,
            max_price: Annotated[Optional[float], Field(description="maximum price (inclusive)")] = None,
            generate_response: Annotated[bool, Field(description="also generate a grounded recommendation")] = False,
        ) -> Dict[str, Any]:
            try:
                retrieval_filter = build_filter(category, tier, min_price, max_price)
                if generate_response:
                    grounded = await self.pipeline.answer(
                        query, retrieval_filter, top_k=top_k, min_similarity=min_similarity
                    )
                    return {"ok": True, **grounded.to_dict()}

                results = await self.pipeline.retrieve(
                    query, retrieval_filter, top_k=top_k, min_similarity=min_similarity
                )
                return {
                    "ok": True,
                    "query": query,
                    "results": [r.to_dict() for r in results],
                    "totalMatches": len(results),
                }
            except ScoutError as e:
                logger.warning("retrieve failed: %s", e)
                return error_response(e)
            except Exception as e:
                logger.error("retrieve crashed", exc_info=True)
                return error_response(e)

        # ---------- MCP Tools: Research ---------- #
        @self.mcp.tool(
            name="research",
            description=(
                "Multi-step deep research for complex product questions. "
                "Breaks the question into sub-questions, researches each against the "
                "catalog in parallel, and synthesizes a final recommendation with a "
                "confidence score (1-10)."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def tool_research(
            query: Annotated[str, Field(description="complex product question to research")],
            max_sub_questions: Annotated[Optional[int], Field(description="upper bound on sub-questions (defaults to config)")] = None,
            category: Annotated[Optional[str], Field(description="only research items in this category")] = None,
            tier: Annotated[Optional[str], Field(description="only research items in this tier")] = None,
            min_price: Annotated[Optional[float], Field(description="minimum price (inclusive)")] = None,
            max_price: Annotated[Optional[float], Field(description="maximum price (inclusive)")] = None,
        ) -> Dict[str, Any]:
            try:
                retrieval_filter = build_filter(category, tier, min_price, max_price)
                result = await self.pipeline.research(
                    query, retrieval_filter, max_sub_questions=max_sub_questions
                )
                return {"ok": True, **result.to_dict()}
            except ScoutError as e:
                logger.warning("research failed: %s", e)
                return error_response(e)
            except Exception as e:
                logger.error("research crashed", exc_info=True)
                return error_response(e)

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def main(argv=None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the Scout MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default=os.getenv("SCOUT_SERVER_NAME", "scout"),
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--catalog",
        default=None,
        help="Path to the catalog JSON file (overrides config).",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("SCOUT_LOG_LEVEL", "INFO"),
        help="Logging level (DEBUG, INFO, WARNING, ...).",
    )
    args = parser.parse_args(argv)

    # stdout is the MCP transport; logs go to stderr
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config()
    if args.catalog:
        config.catalog.path = args.catalog

    pipeline = build_pipeline(config)
    if config.retriever.precompute_catalog_embeddings:
        try:
            count = asyncio.run(pipeline.warm_up())
            logger.info("Catalog embedding index warmed (%d items)", count)
        except ScoutError as e:
            logger.warning("Catalog precompute failed, embedding per request: %s", e)

    app = ScoutServerApp(pipeline, server_name=args.server_name)

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
