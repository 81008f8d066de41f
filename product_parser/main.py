"""
Product URL Parser - FastAPI Application
Main entry point with REST API endpoints.
"""
from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from product_parser import __version__
from product_parser.config import config
from product_parser.layers.extraction import ExtractionEngine
from product_parser.models.product import MetricsSnapshot, ParseResult, ProductInfo
from product_parser.utils.logger import get_logger


# Initialize FastAPI app
app = FastAPI(
    title="Product URL Parser",
    description="Extracts product name, price, image and store from merchant product URLs",
    version=__version__,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize engine
engine = ExtractionEngine()

logger = get_logger("main")


# API Routes
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "remote_render_configured": config.is_remote_render_configured(),
    }


@app.get("/api/parse", response_model=ProductInfo, response_model_exclude_none=True)
async def parse_product(url: str = Query(..., description="Product page URL")):
    """
    Extract product metadata for a URL.

    Never fails: unresolvable pages still return a store name and an
    item name guessed from the URL.
    """
    logger.info("parse_request", url=url)
    return await engine.parse_product_url(url)


@app.get("/api/parse/details", response_model=ParseResult)
async def parse_product_details(url: str = Query(..., description="Product page URL")):
    """Full parse envelope: method, confidence, error and timing."""
    logger.info("parse_details_request", url=url)
    try:
        return await engine.parse(url)
    except Exception as e:
        logger.error("parse_details_error", error=str(e), url=url)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/metrics", response_model=MetricsSnapshot)
async def get_metrics():
    """Parse counts, latency and cache hit rate."""
    return engine.get_metrics()


@app.get("/metrics")
async def prometheus_metrics():
    """Prometheus exposition of the engine's collectors."""
    return Response(
        content=generate_latest(engine.metrics.registry),
        media_type=CONTENT_TYPE_LATEST,
    )


@app.delete("/api/cache")
async def clear_cache():
    """Drop every cached parse result."""
    engine.clear_cache()
    return {"status": "cleared"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
