from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import init_db
from app.api import feed_scores, tvdb
from app.services.tvdb_client import TokenCache
from app.utils.logger import logger


app = FastAPI(title="BingeFeed API", version="1.0.0")

# Add GZip compression middleware for better transfer performance
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(feed_scores.router, prefix="/api/feed", tags=["Feed Scores"])
app.include_router(tvdb.router, prefix="/api/tvdb", tags=["TVDB"])

# One token cache per process, shared by every proxy request
app.state.tvdb_token_cache = TokenCache(settings.tvdb_token_ttl_seconds)


@app.on_event("startup")
async def startup_event():
    await init_db()
    logger.info("BingeFeed API started")


@app.get("/")
def root():
    return {"message": "BingeFeed API is running."}


@app.get("/health")
def health():
    return {"status": "ok"}
