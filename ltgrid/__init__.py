"""Run test-runner browsers on the LambdaTest remote WebDriver grid.

Provides the LambdaTestProvider browser provider plus the config loader
it reads LT_* settings from.
"""

from ltgrid.base import BrowserProvider, JobResult
from ltgrid.config import Config, load
from ltgrid.provider import LambdaTestProvider

__all__ = ["BrowserProvider", "Config", "JobResult", "LambdaTestProvider", "load"]
