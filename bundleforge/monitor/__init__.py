"""Rich terminal rendering of pipeline reports."""

from bundleforge.monitor.renderer import ReportRenderer

__all__ = ["ReportRenderer"]
