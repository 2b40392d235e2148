from .base import PageRenderEngine
from .pypdfium2_engine import Pypdfium2Engine

__all__ = ["PageRenderEngine", "Pypdfium2Engine"]
