from .engines import ImpactEngine, LocalImpactEngine, RemoteImpactEngine, build_engine
from .errors import ConfigurationError, ExternalServiceError, ImpactAnalysisError, InvalidInputError
from .impact_model import AnalysisResult, AsteroidInput, AsteroidType


def analyze(inp: AsteroidInput) -> AnalysisResult:
    """Run the deterministic local engine with default settings."""
    return LocalImpactEngine().analyze(inp)
