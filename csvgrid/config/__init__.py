from .settings import ExportJobConfig, ExportJobConfigManager
from .loaders import load_rows

__all__ = ['ExportJobConfig', 'ExportJobConfigManager', 'load_rows']
