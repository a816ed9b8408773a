"""
OncoVector Clinical Decision Support - FastAPI Application

API endpoints for:
- Service and registry health
- Reference case browsing
- Running the diagnostic pipeline and polling its progress
"""
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from typing import Optional
from datetime import datetime
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from oncovector.config import settings
from oncovector.core.collaborators import Collaborators, NodeStatus, build_collaborators
from oncovector.core.pipeline import PipelineController
from oncovector.core.registry import CaseRegistry, load_registry
from oncovector.models import (
    AnalyzeRequest,
    CancelResponse,
    HealthResponse,
    ProgressResponse,
    RegistryHealthResponse,
    RegistryNodeResponse,
)
from oncovector.utils import get_logger, setup_logging, OncoVectorError

setup_logging(settings.log_level, settings.log_file)
logger = get_logger(__name__)


# ---- Services (one registry snapshot and one controller per process) ----
_registry = load_registry(settings.registry_path)
_collaborators = build_collaborators(settings)
_controller = PipelineController.from_settings(_registry, _collaborators, settings)
START_TIME = datetime.now()


def get_registry() -> CaseRegistry:
    return _registry


def get_collaborators() -> Collaborators:
    return _collaborators


def get_controller() -> PipelineController:
    return _controller


# ---- FastAPI Application ----

app = FastAPI(
    title="OncoVector Clinical Decision Support API",
    description="Staged diagnostic pipeline with reference-case retrieval",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OncoVectorError)
async def oncovector_error_handler(request: Request, exc: OncoVectorError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# ---- API Endpoints ----

def _health(registry: CaseRegistry, collaborators: Collaborators) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        registry_size=len(registry),
        registry_source=registry.source,
        mode=collaborators.mode,
    )


@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root(
    registry: CaseRegistry = Depends(get_registry),
    collaborators: Collaborators = Depends(get_collaborators),
):
    """API root - health check."""
    return _health(registry, collaborators)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(
    registry: CaseRegistry = Depends(get_registry),
    collaborators: Collaborators = Depends(get_collaborators),
):
    """Health check endpoint."""
    return _health(registry, collaborators)


@app.get("/api/v1/registry/health", response_model=RegistryHealthResponse, tags=["Registry"])
async def registry_health(collaborators: Collaborators = Depends(get_collaborators)):
    """Probe the research registry nodes."""
    nodes = await collaborators.health_probe.check()
    return RegistryHealthResponse(
        online=sum(1 for n in nodes if n.status == NodeStatus.ONLINE),
        total=len(nodes),
        nodes=[RegistryNodeResponse(**n.to_dict()) for n in nodes],
    )


@app.get("/api/v1/cases", tags=["Registry"])
async def list_cases(
    diagnosis: Optional[str] = None,
    registry: CaseRegistry = Depends(get_registry),
):
    """List reference cases, optionally filtered by diagnosis substring."""
    cases = registry.filter_by_diagnosis(diagnosis) if diagnosis else list(registry)
    return {"count": len(cases), "cases": [c.to_dict() for c in cases]}


@app.get("/api/v1/cases/{case_id}", tags=["Registry"])
async def get_case(case_id: str, registry: CaseRegistry = Depends(get_registry)):
    case = registry.get(case_id)
    if case is None:
        raise HTTPException(status_code=404, detail=f"Case {case_id} not found")
    return case.to_dict()


@app.post("/api/v1/analyze", tags=["Pipeline"])
async def analyze(request: AnalyzeRequest, controller: PipelineController = Depends(get_controller)):
    """
    Run the diagnostic pipeline for one case.

    400 on invalid intake, 409 while another case is being analysed. A run
    that fails at a fatal stage answers with that error's status and still
    carries the failed stage and last progress for inspection.
    """
    if controller.is_running:
        raise HTTPException(status_code=409, detail="An analysis is already in progress")

    result = await controller.run(request.to_query())
    status_code = 200 if result.succeeded else result.error.http_status
    return JSONResponse(status_code=status_code, content=result.to_dict())


@app.post("/api/v1/analyze/cancel", response_model=CancelResponse, tags=["Pipeline"])
async def cancel_analysis(controller: PipelineController = Depends(get_controller)):
    """Cancel the active run before its next stage."""
    return CancelResponse(cancelled=controller.cancel())


@app.get("/api/v1/progress", response_model=ProgressResponse, tags=["Pipeline"])
async def get_progress(controller: PipelineController = Depends(get_controller)):
    snapshot = controller.progress
    return ProgressResponse(
        state=controller.state.value,
        running=controller.is_running,
        **snapshot.to_dict(),
    )


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
