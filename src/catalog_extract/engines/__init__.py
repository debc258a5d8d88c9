from .adobe_pdf_services import AdobePdfServicesEngine
from .base import EngineUnavailableError, RenderEngine, RenderEngineError, RenderFailedError
from .pdftoppm_cli import PdftoppmCliEngine
from .pypdfium2_engine import Pypdfium2Engine

__all__ = [
    "AdobePdfServicesEngine",
    "EngineUnavailableError",
    "PdftoppmCliEngine",
    "Pypdfium2Engine",
    "RenderEngine",
    "RenderEngineError",
    "RenderFailedError",
]
