from docrag.config.loader import load_config
from docrag.config.settings import Settings

__all__ = ["Settings", "load_config"]
