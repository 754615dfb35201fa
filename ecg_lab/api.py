# ecg_lab/api.py
import logging
from typing import List

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api_models import (
    ECGStripRequest, ECGStripResponse, MorphologyParameters, PathologySummary, PathologyType, SampleRequest,
)
from .pathologies import (
    PATHOLOGIES, build_synthesis_config, get_pathology_config, get_pathology_display_name,
)
from .rhythm_logic import WaveformSynthesizer, generate_ecg_strip

logger = logging.getLogger(__name__)

app = FastAPI(title="ECG Lab API")

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# One synthesizer (and modifier cache) per process
synthesizer = WaveformSynthesizer()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Drop the echoed input: NaN/Infinity cannot be serialized as JSON
    errors = [{key: error[key] for key in ("type", "loc", "msg") if key in error} for error in exc.errors()]
    logger.warning("Rejected request to %s: %s", request.url.path, errors)
    return JSONResponse(status_code=422, content={"detail": errors})


@app.get("/pathologies", response_model=List[PathologySummary])
def list_pathologies():
    summaries = []
    for pathology in PATHOLOGIES:
        config = get_pathology_config(pathology)
        summaries.append(PathologySummary(
            id=pathology,
            display_name=get_pathology_display_name(pathology),
            heart_rate_bpm=config.heart_rate_bpm,
            amplitude=config.amplitude,
            noise=config.noise,
            sample_rate=config.sample_rate,
        ))
    return summaries


@app.get("/pathologies/{pathology}/modifiers", response_model=MorphologyParameters)
def get_modifiers(pathology: str):
    try:
        key = PathologyType(pathology)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown pathology '{pathology}'")
    return synthesizer.resolve_modifiers(key)


@app.post("/generate_ecg", response_model=ECGStripResponse)
def get_ecg_strip(params: ECGStripRequest):
    config = build_synthesis_config(
        params.pathology,
        heart_rate_bpm=params.heart_rate_bpm,
        amplitude=params.amplitude,
        noise=params.noise,
    )
    logger.debug("Generating %.1fs strip with %s", params.duration_sec, config)
    time_axis, ecg_signal, rhythm_description = generate_ecg_strip(
        config,
        duration_sec=params.duration_sec,
        start_time_sec=params.start_time_sec,
        synthesizer=synthesizer,
    )
    return {
        "time_axis": time_axis.tolist(),
        "ecg_signal": ecg_signal.tolist(),
        "rhythm_generated": rhythm_description,
        "pathology": config.pathology,
        "heart_rate_bpm": config.heart_rate_bpm,
        "sample_rate": config.sample_rate,
    }


@app.post("/synthesize_sample")
def get_sample(params: SampleRequest):
    config = build_synthesis_config(
        params.pathology,
        heart_rate_bpm=params.heart_rate_bpm,
        amplitude=params.amplitude,
        noise=params.noise,
    )
    value = synthesizer.synthesize(params.phase, config, params.beat_index)
    return {
        "value": value,
        "phase": params.phase % 1,
        "beat_index": params.beat_index,
        "pathology": config.pathology,
    }
