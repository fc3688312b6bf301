"""Compile a directory tree of source fragments into a single fantasy-console cart."""

from .models import BuildReport, BuildState, BuildStatus, ConstraintProfile, CartFormat, Diagnostic, Severity
from .orchestrator import BuildOrchestrator

__version__ = "0.1.0"

__all__ = [
    "BuildOrchestrator",
    "BuildReport",
    "BuildState",
    "BuildStatus",
    "CartFormat",
    "ConstraintProfile",
    "Diagnostic",
    "Severity",
    "__version__",
]
