from importlib.metadata import PackageNotFoundError, version

from apa_report.api import apa_print
from apa_report.config import ApaConfig
from apa_report.report.contracts import ApaResult, ApaTable

try:
    __version__ = version("apa-report")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = ["ApaConfig", "ApaResult", "ApaTable", "__version__", "apa_print"]
