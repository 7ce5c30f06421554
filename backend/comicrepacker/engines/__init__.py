from .repack import RepackEngine
from .walker import DirectoryScanEngine

__all__ = ["DirectoryScanEngine", "RepackEngine"]
