from .errors import AuthError, ClientInputError, NotFoundError, PersistenceError, RxLensError, UpstreamError
from .models import AnalysisResult, Medication, PipelineOutcome, PipelineRun, PipelineState
from .orchestrator import AnalysisExtractor, extract_analysis
from .pipeline import PrescriptionPipeline, bearer_token

__all__ = [
    "AnalysisExtractor",
    "AnalysisResult",
    "AuthError",
    "ClientInputError",
    "Medication",
    "NotFoundError",
    "PersistenceError",
    "PipelineOutcome",
    "PipelineRun",
    "PipelineState",
    "PrescriptionPipeline",
    "RxLensError",
    "UpstreamError",
    "bearer_token",
    "extract_analysis",
]
