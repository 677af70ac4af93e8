import os
import time
import logging
from functools import lru_cache
from fastapi import FastAPI, UploadFile, File, HTTPException, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import BaseModel
from typing import Optional, Dict, List

from frameprobe import AnalysisPipeline, Config, load_config
from frameprobe.errors import (
    ConfigError,
    EmptyInputError,
    FrameProbeError,
    InvalidVideoError,
    NoFramesExtractedError,
    QuotaExhaustedError,
    RateLimitedError,
    TransportError,
)
from frameprobe.oracle import FrameClassifier, RemoteClassifier
from frameprobe.sampling import frame_from_data_uri

app = FastAPI(title="FrameProbe API", version="0.1.0")

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 100 * 1024 * 1024


class TimingMiddleware(BaseHTTPMiddleware):
    """Middleware to log request/response times."""
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        path = request.url.path
        method = request.method

        response = await call_next(request)

        process_time = time.time() - start_time
        status_code = response.status_code

        # Analyses routinely take several seconds; flag the really slow ones
        if process_time > 30.0:
            logger.warning(
                f"SLOW REQUEST: {method} {path} - {process_time:.3f}s - Status: {status_code}"
            )
        else:
            logger.info(
                f"{method} {path} - {process_time:.3f}s - Status: {status_code}"
            )

        response.headers["X-Process-Time"] = str(process_time)
        return response


# Add timing middleware (before CORS so it times everything)
app.add_middleware(TimingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_for(exc: FrameProbeError) -> int:
    if isinstance(exc, (InvalidVideoError, NoFramesExtractedError, EmptyInputError)):
        return 400
    if isinstance(exc, RateLimitedError):
        return 429
    if isinstance(exc, QuotaExhaustedError):
        return 402
    if isinstance(exc, TransportError):
        return 502
    return 500


@app.exception_handler(FrameProbeError)
async def frameprobe_error_handler(request: Request, exc: FrameProbeError):
    status_code = _status_for(exc)
    logger.error(f"{request.method} {request.url.path} failed ({status_code}): {exc}")
    return JSONResponse(status_code=status_code, content={"detail": exc.user_message})


@lru_cache(maxsize=1)
def get_config() -> Config:
    return load_config(os.getenv("FRAMEPROBE_CONFIG"))


def get_classifier(config: Config = Depends(get_config)) -> FrameClassifier:
    try:
        return RemoteClassifier(config.oracle)
    except ConfigError as e:
        logger.error(f"Classifier unavailable: {e}")
        raise HTTPException(status_code=500, detail="Classification service is not configured")


# Simple auth check (replace with proper auth in production)
async def verify_token(authorization: Optional[str] = Header(None)):
    """Simple token verification."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")
    token = authorization.replace("Bearer ", "")
    expected_token = os.getenv("API_AUTH_TOKEN", "dev-token")
    if token != expected_token:
        raise HTTPException(status_code=401, detail="Invalid token")
    return token


# Request/Response models
class FrameVerdictResponse(BaseModel):
    frame_index: int
    is_artificial: bool
    confidence: float
    face_score: float
    lighting_score: float
    artifact_score: float
    quality_score: float
    issues: List[str]


class AnalysisResponse(BaseModel):
    confidence: float
    verdict: str
    details: Dict[str, float]
    frames_analyzed: int
    processing_time: float
    frame_verdicts: List[FrameVerdictResponse]
    config_version: str


class FramesRequest(BaseModel):
    frames: Optional[List[str]] = None


class HealthResponse(BaseModel):
    status: str
    engine_version: Optional[str] = None
    model: Optional[str] = None


@app.post("/analyze", response_model=AnalysisResponse)
async def analyze_upload(
    video: UploadFile = File(...),
    token: str = Depends(verify_token),
    config: Config = Depends(get_config),
    classifier: FrameClassifier = Depends(get_classifier),
):
    """Sample, classify and aggregate an uploaded video."""
    # Validate file type
    if not video.content_type or not video.content_type.startswith('video/'):
        raise HTTPException(status_code=400, detail="File must be a video")

    # Validate file size (100MB max)
    content = await video.read()
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File size exceeds 100MB limit")

    logger.info(f"Analyzing upload {video.filename} ({len(content) / (1024 * 1024):.2f} MB)")
    pipeline = AnalysisPipeline(config, classifier=classifier)
    result = await run_in_threadpool(pipeline.run, content, video.filename)
    return AnalysisResponse(**result.to_dict())


@app.post("/analyze-frames", response_model=AnalysisResponse)
async def analyze_frames(
    body: FramesRequest,
    token: str = Depends(verify_token),
    config: Config = Depends(get_config),
    classifier: FrameClassifier = Depends(get_classifier),
):
    """Classify and aggregate frames the client already sampled (data URIs)."""
    if not body.frames:
        raise HTTPException(status_code=400, detail="No frames provided")

    frames = [frame_from_data_uri(i, uri) for i, uri in enumerate(body.frames)]
    logger.info(f"Analyzing {len(frames)} submitted frames")
    pipeline = AnalysisPipeline(config, classifier=classifier)
    result = await run_in_threadpool(pipeline.run_frames, frames)
    return AnalysisResponse(**result.to_dict())


@app.get("/health", response_model=HealthResponse)
async def health_check(config: Config = Depends(get_config)):
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        engine_version=config.config_version,
        model=config.oracle.model,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
